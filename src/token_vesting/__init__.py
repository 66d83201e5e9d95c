"""
Token Vesting - declarative vesting plan compiler

Compiles a token release plan (a total amount plus schedule items using
absolute dates, relative offsets and repeat counts) into an exact sequence of
release events for the on-chain vesting program.

Main Components:
- Core: duration parsing, plan validation, schedule building and compilation
- Blockchain: release accounting for vesting accounts
- CLI: operator command-line interface
"""

__version__ = "0.1.0"
__author__ = "Token Vesting Development Team"

__all__ = []
