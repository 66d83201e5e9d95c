"""
Loading of vesting plans and vesting account records from files.

Plan files are JSON or YAML holding one plan mapping or a list of them.
Account files are CSV with a ``vestingName,receiver,tokens`` header.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from token_vesting.core.vesting_exceptions import PlanLoadError

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = ("vestingName", "receiver", "tokens")


def load_plan_file(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read raw vesting plans from a JSON or YAML file.

    Returns:
        List of untyped plan mappings, ready for ``compile_plans``

    Raises:
        PlanLoadError: If the file is missing, unparsable or not plan-shaped
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".json", ".yaml", ".yml"):
        raise PlanLoadError(f"Unsupported plan file type: {path.name}")

    try:
        with open(path, "r", encoding="utf-8") as handle:
            if suffix == ".json":
                data = json.load(handle)
            else:
                data = yaml.safe_load(handle)
    except OSError as exc:
        raise PlanLoadError(f"Could not read plan file {path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PlanLoadError(f"Could not parse plan file {path}: {exc}") from exc

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not data:
        raise PlanLoadError(f"Plan file {path} must contain a plan or a non-empty list of plans")
    for position, plan in enumerate(data):
        if not isinstance(plan, dict):
            raise PlanLoadError(f"Plan file {path}: entry {position} is not a mapping")

    logger.debug("Loaded %d vesting plans from %s", len(data), path)
    return data


class _AccountRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    vestingName: StrictStr = Field(min_length=1)
    receiver: StrictStr = Field(min_length=1)
    tokens: int = Field(gt=0)

    @field_validator("tokens", mode="before")
    @classmethod
    def _whole_tokens(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip().isdigit():
            raise ValueError("must be a whole number of tokens")
        return value


@dataclass(frozen=True)
class VestingAccountRecord:
    vesting_name: str
    receiver: str
    tokens: int


def load_vesting_accounts(path: Union[str, Path]) -> List[VestingAccountRecord]:
    """
    Read vesting account rows from a CSV file.

    Raises:
        PlanLoadError: If the file is unreadable, lacks required columns or
            a row is invalid (the message names the 1-based data row)
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle)
            missing = [column for column in ACCOUNT_COLUMNS if column not in (reader.fieldnames or [])]
            if missing:
                raise PlanLoadError(f"Account file {path} is missing columns: {', '.join(missing)}")
            rows = list(reader)
    except OSError as exc:
        raise PlanLoadError(f"Could not read account file {path}: {exc}") from exc

    records = []
    for row_number, row in enumerate(rows, start=1):
        try:
            parsed = _AccountRow.model_validate({key: (value or "").strip() for key, value in row.items() if key})
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field = first["loc"][0] if first.get("loc") else "row"
            raise PlanLoadError(
                f"Error while validating csv input at row {row_number}: {field}: {first['msg']}",
                details={"row": row_number, "data": dict(row)},
            ) from exc
        records.append(
            VestingAccountRecord(
                vesting_name=parsed.vestingName,
                receiver=parsed.receiver,
                tokens=parsed.tokens,
            )
        )

    logger.debug("Loaded %d vesting accounts from %s", len(records), path)
    return records
