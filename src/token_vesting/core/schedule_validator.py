"""
Validation of untyped vesting plan input.

Raw plans usually come from deserialized JSON or YAML. Each schedule item is
checked against the pydantic model for its ``type`` and every problem is
collected before a ValidationError is raised, so an operator can fix the whole
file in one pass.

Schedule type semantics:
- fixed: linear vesting at an absolute time; needs time and period,
  count defaults to 1
- onetime: cliffs and other one-time unlocks at an absolute time; needs time
- offseted: linear vesting relative to the previous item's last unlock;
  needs offset, period defaults to the empty duration, count defaults to 1

``part`` is optional for every type; an item without it takes the remaining
tokens.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from token_vesting.core.duration_parser import parse_duration
from token_vesting.core.schedule_models import FixedItem, OffsetedItem, OneTimeItem, ScheduleItem
from token_vesting.core.vesting_exceptions import DurationFormatError, ValidationError, ValidationIssue

PartInt = Optional[StrictInt]
TimeValue = Union[StrictInt, datetime, date]


def to_epoch_seconds(value: Union[int, datetime, date]) -> int:
    """Convert an instant to whole Unix seconds; naive datetimes are UTC."""
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return math.floor(value.timestamp())
    return math.floor(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())


class _ItemInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    part: PartInt = Field(default=None, ge=1)


class _TimedItemInput(_ItemInput):
    time: TimeValue

    @field_validator("time")
    @classmethod
    def _time_to_epoch(cls, value: Any) -> int:
        seconds = to_epoch_seconds(value)
        if seconds < 0:
            raise ValueError("must not precede the Unix epoch")
        return seconds


class FixedItemInput(_TimedItemInput):
    period: StrictStr
    count: StrictInt = Field(default=1, ge=1)


class OneTimeItemInput(_TimedItemInput):
    pass


class OffsetedItemInput(_ItemInput):
    offset: StrictStr
    period: Optional[StrictStr] = None
    count: StrictInt = Field(default=1, ge=1)


ITEM_MODELS: Dict[str, Type[_ItemInput]] = {
    "fixed": FixedItemInput,
    "onetime": OneTimeItemInput,
    "offseted": OffsetedItemInput,
}


class PlanInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr = Field(min_length=1)
    amount: StrictInt = Field(gt=0)
    schedule: List[Any]


def _issues_from_pydantic(exc: PydanticValidationError, index: Optional[int]) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    seen = set()
    for error in exc.errors():
        loc = error.get("loc") or ("__root__",)
        field = str(loc[0])
        # union members each report the same field
        if field in seen:
            continue
        seen.add(field)
        issues.append(ValidationIssue(index=index, field=field, message=error["msg"]))
    return issues


def _check_item(index: int, raw: Any, max_tranche_count: Optional[int]) -> Tuple[Optional[_ItemInput], List[ValidationIssue]]:
    if not isinstance(raw, Mapping):
        return None, [ValidationIssue(index, "type", "schedule item must be a mapping")]

    item_type = raw.get("type")
    model = ITEM_MODELS.get(item_type) if isinstance(item_type, str) else None
    if model is None:
        expected = "|".join(ITEM_MODELS)
        return None, [ValidationIssue(index, "type", f"must be one of {expected}, got {item_type!r}")]

    try:
        item = model.model_validate(dict(raw))
    except PydanticValidationError as exc:
        return None, _issues_from_pydantic(exc, index)

    count = getattr(item, "count", 1)
    if max_tranche_count is not None and count > max_tranche_count:
        return None, [ValidationIssue(index, "count", f"must be at most {max_tranche_count}")]
    return item, []


def _duration_field(index: int, field: str, text: str) -> int:
    try:
        return parse_duration(text)
    except DurationFormatError as exc:
        raise DurationFormatError(
            f"schedule[{index}].{field}: {exc.message}", text=text, index=index, field=field
        ) from exc


def _to_schedule_item(index: int, item: _ItemInput) -> ScheduleItem:
    if isinstance(item, FixedItemInput):
        return FixedItem(
            time=item.time,
            period=_duration_field(index, "period", item.period),
            count=item.count,
            part=item.part,
        )
    if isinstance(item, OneTimeItemInput):
        return OneTimeItem(time=item.time, part=item.part)
    return OffsetedItem(
        offset=_duration_field(index, "offset", item.offset),
        period=_duration_field(index, "period", item.period if item.period is not None else "P"),
        count=item.count,
        part=item.part,
    )


def validate(
    raw_items: Sequence[Any],
    max_tranche_count: Optional[int] = None,
) -> List[ScheduleItem]:
    """
    Validate raw schedule items and convert them to typed schedule items.

    Structural problems are collected for every item first; duration strings
    are only parsed once the structure is sound.

    Args:
        raw_items: Untyped item records
        max_tranche_count: Optional upper bound on ``count``

    Returns:
        Schedule items in input order

    Raises:
        ValidationError: If any item is structurally invalid; lists every issue
        DurationFormatError: If an offset or period string is malformed
    """
    checked: List[_ItemInput] = []
    issues: List[ValidationIssue] = []
    for index, raw in enumerate(raw_items):
        item, item_issues = _check_item(index, raw, max_tranche_count)
        issues.extend(item_issues)
        if item is not None:
            checked.append(item)

    if issues:
        raise ValidationError.from_issues(issues)
    return [_to_schedule_item(index, item) for index, item in enumerate(checked)]


def validate_plan_shape(raw_plan: Any) -> PlanInput:
    """Check the top-level ``name``/``amount``/``schedule`` fields of a raw plan."""
    if not isinstance(raw_plan, Mapping):
        raise ValidationError.from_issues(
            [ValidationIssue(None, "plan", "vesting plan must be a mapping")]
        )
    try:
        return PlanInput.model_validate(dict(raw_plan))
    except PydanticValidationError as exc:
        raise ValidationError.from_issues(_issues_from_pydantic(exc, None)) from exc
