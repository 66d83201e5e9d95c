#!/usr/bin/env python3
"""
Token Vesting CLI

Compiles declarative vesting plans into release schedules for the on-chain
vesting program:
- Duration parsing
- Plan validation and compilation
- Unlocked-token previews for vesting accounts
- Configuration inspection
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from token_vesting.blockchain.vesting_manager import VestingAccountData, VestingManager
from token_vesting.core.config_manager import ConfigManager, ConfigurationError
from token_vesting.core.duration_parser import format_duration, parse_duration
from token_vesting.core.logging_config import setup_logging
from token_vesting.core.plan_loader import load_plan_file, load_vesting_accounts
from token_vesting.core.schedule_compiler import compile_plans
from token_vesting.core.schedule_models import LinearRelease, VestingSchedule
from token_vesting.core.schedule_validator import to_epoch_seconds
from token_vesting.core.vesting_exceptions import ValidationError, VestingError

logger = logging.getLogger(__name__)

console = Console()


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    if isinstance(exc, ValidationError):
        for issue in exc.issues:
            console.print(f"  - {issue}")
    sys.exit(exit_code)


def _format_time(timestamp: int) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime(timestamp))


def _schedule_table(name: str, schedule: VestingSchedule) -> Table:
    table = Table(title=f"Vesting schedule '{name}'", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Kind")
    table.add_column("Start")
    table.add_column("Period")
    table.add_column("Tranches", justify="right")
    table.add_column("Tokens", justify="right")

    for index, event in enumerate(schedule.events):
        if isinstance(event, LinearRelease):
            table.add_row(
                str(index),
                "linear",
                _format_time(event.start_time),
                format_duration(event.period),
                str(event.tranche_count),
                f"{event.token_amount:,}",
            )
        else:
            table.add_row(str(index), "lump", _format_time(event.time), "-", "1", f"{event.token_amount:,}")

    table.caption = f"{schedule.event_count} events, {schedule.total_token_count:,} tokens"
    return table


def _emit(payload: Any, output_format: str = "json") -> None:
    if output_format == "yaml":
        click.echo(yaml.safe_dump(payload, sort_keys=False))
    else:
        click.echo(json.dumps(payload, indent=2))


def _parse_instant(value: str) -> int:
    """Accept a Unix timestamp or an ISO-8601 datetime."""
    if value.isdigit():
        return int(value)
    try:
        return to_epoch_seconds(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError as exc:
        raise click.BadParameter(f"not a timestamp or ISO-8601 datetime: {value}") from exc


@click.group()
@click.option("--json-output", is_flag=True, help="Emit machine-readable JSON")
@click.option("--environment", default=None, help="Configuration environment (development/testnet/production)")
@click.option("--config-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory holding default.yaml and <environment>.yaml")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, environment: Optional[str],
        config_dir: Optional[Path], log_level: Optional[str]):
    """Compile token vesting plans into release schedules."""
    overrides: Dict[str, Any] = {}
    if log_level:
        overrides["logging.level"] = log_level
    try:
        config = ConfigManager(
            environment=environment,
            config_dir=str(config_dir) if config_dir else None,
            cli_overrides=overrides,
        )
    except ConfigurationError as exc:
        _cli_fail(exc)

    setup_logging(
        name="token_vesting",
        level=config.logging.level,
        json_format=config.logging.json_format,
        log_file=config.logging.log_file,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["json_output"] = json_output


@cli.command("duration")
@click.argument("text")
@click.pass_context
def duration_command(ctx: click.Context, text: str):
    """Parse an ISO-8601 style duration (e.g. P1Y, P1DT2H, PT30M) into seconds."""
    try:
        seconds = parse_duration(text)
    except VestingError as exc:
        _cli_fail(exc)

    if ctx.obj["json_output"]:
        _emit({"duration": text, "seconds": seconds})
    else:
        console.print(f"{text} = [bold]{seconds}[/] seconds ({format_duration(seconds)})")


@cli.command("validate")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def validate_command(ctx: click.Context, plan_file: Path):
    """Validate every plan in PLAN_FILE without writing anything."""
    config: ConfigManager = ctx.obj["config"]
    try:
        schedules = compile_plans(load_plan_file(plan_file), config.compiler)
    except VestingError as exc:
        _cli_fail(exc)

    if ctx.obj["json_output"]:
        _emit({"valid": True, "plans": list(schedules)})
        return
    for name, schedule in schedules.items():
        console.print(f"[green]OK[/] {name}: {schedule.event_count} events, {schedule.total_token_count:,} tokens")


@cli.command("compile")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "output_format", type=click.Choice(["table", "json", "yaml"]), default="table",
              help="Output format")
@click.option("--output", "output_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the compiled schedules to a file instead of stdout")
@click.pass_context
def compile_command(ctx: click.Context, plan_file: Path, output_format: str, output_file: Optional[Path]):
    """Compile every plan in PLAN_FILE into a release schedule."""
    config: ConfigManager = ctx.obj["config"]
    try:
        schedules = compile_plans(load_plan_file(plan_file), config.compiler)
    except VestingError as exc:
        _cli_fail(exc)

    if ctx.obj["json_output"] and output_format == "table":
        output_format = "json"

    payload = [{"name": name, **schedule.to_dict()} for name, schedule in schedules.items()]

    if output_file is not None:
        if output_format == "yaml":
            text = yaml.safe_dump(payload, sort_keys=False)
        else:
            text = json.dumps(payload, indent=2)
        output_file.write_text(text, encoding="utf-8")
        logger.info("Wrote %d compiled schedules to %s", len(payload), output_file)
        console.print(f"[green]Wrote[/] {len(payload)} schedules to {output_file}")
        return

    if output_format == "table":
        for name, schedule in schedules.items():
            console.print(_schedule_table(name, schedule))
    else:
        _emit(payload, output_format)


@cli.command("unlocked")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("accounts_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--at", "at_time", default=None, help="Unix timestamp or ISO-8601 datetime (default: now)")
@click.pass_context
def unlocked_command(ctx: click.Context, plan_file: Path, accounts_file: Path, at_time: Optional[str]):
    """Show unlocked tokens per vesting account listed in ACCOUNTS_FILE."""
    config: ConfigManager = ctx.obj["config"]
    now = _parse_instant(at_time) if at_time else int(time.time())

    manager = VestingManager(time_provider=lambda: now)
    rows = []
    try:
        for name, schedule in compile_plans(load_plan_file(plan_file), config.compiler).items():
            manager.register_schedule(name, schedule)
        for record in load_vesting_accounts(accounts_file):
            account_id = manager.create_vesting_account(
                VestingAccountData(
                    receiver=record.receiver,
                    schedule_name=record.vesting_name,
                    total_tokens=record.tokens,
                )
            )
            rows.append({
                "account": account_id,
                "receiver": record.receiver,
                "vesting_name": record.vesting_name,
                "total_tokens": record.tokens,
                "unlocked": manager.get_unlocked_amount(account_id),
                "available": manager.get_available_amount(account_id),
            })
    except VestingError as exc:
        _cli_fail(exc)

    if ctx.obj["json_output"]:
        _emit({"time": now, "accounts": rows})
        return

    table = Table(title=f"Unlocked tokens at {_format_time(now)}", box=box.ROUNDED)
    table.add_column("Account")
    table.add_column("Receiver")
    table.add_column("Vesting")
    table.add_column("Total", justify="right")
    table.add_column("Unlocked", justify="right")
    for row in rows:
        table.add_row(
            row["account"],
            row["receiver"],
            row["vesting_name"],
            f"{row['total_tokens']:,}",
            f"{row['unlocked']:,}",
        )
    console.print(table)


@cli.group("config")
def config_group():
    """Configuration inspection commands."""
    pass


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Print the effective configuration with secrets redacted."""
    config: ConfigManager = ctx.obj["config"]
    payload = config.get_public_config()
    if ctx.obj["json_output"]:
        _emit(payload)
    else:
        click.echo(yaml.safe_dump(payload, sort_keys=False))


def main():
    """CLI entry point"""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
