"""
Token Vesting Blockchain Module

Read-side release accounting for vesting accounts that hold a share of a
compiled vesting schedule.
"""

__all__ = []
