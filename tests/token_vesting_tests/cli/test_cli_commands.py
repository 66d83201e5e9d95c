import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from token_vesting.cli.main import cli

QUIET = ["--json-output", "--log-level", "CRITICAL"]


def _write_plan(tmp_path: Path, plan) -> Path:
    path = tmp_path / "plans.json"
    path.write_text(json.dumps(plan))
    return path


def _write_accounts(tmp_path: Path) -> Path:
    path = tmp_path / "accounts.csv"
    path.write_text("vestingName,receiver,tokens\nseed,Alice111,1000\nseed,Bob222,3\n")
    return path


def test_duration_command():
    result = CliRunner().invoke(cli, QUIET + ["duration", "P1DT2H"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"duration": "P1DT2H", "seconds": 93_600}


def test_duration_command_rejects_bad_input():
    result = CliRunner().invoke(cli, ["--log-level", "CRITICAL", "duration", "1 day"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_validate_command(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, [seed_plan])
    result = CliRunner().invoke(cli, QUIET + ["validate", str(plan_file)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"valid": True, "plans": ["seed"]}


def test_validate_command_lists_issues(tmp_path):
    plan_file = _write_plan(
        tmp_path,
        {"name": "bad", "amount": 10, "schedule": [{"type": "fixed", "part": 0}]},
    )
    result = CliRunner().invoke(cli, ["--log-level", "CRITICAL", "validate", str(plan_file)])
    assert result.exit_code == 1
    assert "schedule[0].time" in result.output
    assert "schedule[0].part" in result.output


def test_compile_command_json(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    result = CliRunner().invoke(cli, QUIET + ["compile", str(plan_file)])
    assert result.exit_code == 0, result.output

    (payload,) = json.loads(result.stdout)
    assert payload["name"] == "seed"
    assert payload["total_token_count"] == 1_000_000
    assert [event["token_amount"] for event in payload["events"]] == [60_000, 90_000, 850_000]
    assert payload["events"][2]["kind"] == "linear"


def test_compile_command_yaml_to_file(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    output_file = tmp_path / "compiled.yaml"
    result = CliRunner().invoke(
        cli,
        ["--log-level", "CRITICAL", "compile", str(plan_file), "--format", "yaml", "--output", str(output_file)],
    )
    assert result.exit_code == 0, result.output
    (payload,) = yaml.safe_load(output_file.read_text())
    assert payload["event_count"] == 3


def test_compile_command_table(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    result = CliRunner().invoke(cli, ["--log-level", "CRITICAL", "compile", str(plan_file)])
    assert result.exit_code == 0, result.output
    assert "seed" in result.output
    assert "850,000" in result.output


def test_compile_respects_configured_event_limit(tmp_path, seed_plan):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text("compiler:\n  max_events: 2\n")
    plan_file = _write_plan(tmp_path, seed_plan)
    result = CliRunner().invoke(
        cli, QUIET + ["--config-dir", str(config_dir), "compile", str(plan_file)]
    )
    assert result.exit_code == 1
    assert "at most 2" in result.output


def test_unlocked_command(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    accounts_file = _write_accounts(tmp_path)
    result = CliRunner().invoke(
        cli,
        QUIET + ["unlocked", str(plan_file), str(accounts_file), "--at", "2024-07-01T00:00:00Z"],
    )
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert payload["time"] == 1_719_792_000
    assert [row["account"] for row in payload["accounts"]] == ["vesting_1", "vesting_2"]
    assert [row["unlocked"] for row in payload["accounts"]] == [150, 0]


def test_unlocked_command_unknown_schedule(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    accounts_file = tmp_path / "accounts.csv"
    accounts_file.write_text("vestingName,receiver,tokens\nteam,Alice111,1000\n")
    result = CliRunner().invoke(cli, QUIET + ["unlocked", str(plan_file), str(accounts_file), "--at", "0"])
    assert result.exit_code == 1
    assert "team" in result.output


def test_unlocked_command_rejects_bad_instant(tmp_path, seed_plan):
    plan_file = _write_plan(tmp_path, seed_plan)
    accounts_file = _write_accounts(tmp_path)
    result = CliRunner().invoke(
        cli, QUIET + ["unlocked", str(plan_file), str(accounts_file), "--at", "next tuesday"]
    )
    assert result.exit_code == 2


def test_config_show_redacts_secret(monkeypatch):
    monkeypatch.setenv("VESTING_ENGINE_SENDER_SECRET_KEY", "[1, 2, 3]")
    result = CliRunner().invoke(cli, QUIET + ["--environment", "testnet", "config", "show"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["environment"] == "testnet"
    assert payload["engine"]["sender_secret_key"] == "***"
    assert payload["compiler"]["max_events"] == 16


def test_unknown_environment_fails():
    result = CliRunner().invoke(cli, ["--environment", "staging", "config", "show"])
    assert result.exit_code == 1
    assert "Unknown environment" in result.output
