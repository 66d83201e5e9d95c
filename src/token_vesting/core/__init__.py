"""
Token Vesting Core Module

Core functionality including:
- Duration parsing
- Schedule item validation
- Schedule building and plan compilation
- Configuration, logging and file ingestion
"""

from token_vesting.core.duration_parser import parse_duration
from token_vesting.core.schedule_compiler import CompilerConfig, compile_plan, compile_plans

__all__ = ["parse_duration", "CompilerConfig", "compile_plan", "compile_plans"]
