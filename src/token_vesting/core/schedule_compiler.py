"""
Vesting schedule compiler.

Turns a declarative vesting plan into a VestingSchedule:

    plan = {
        "name": "seed",
        "amount": 1_000_000,
        "schedule": [
            {"type": "onetime", "time": "2024-01-01T00:00:00Z", "part": 100_000},
            {"type": "offseted", "offset": "P6M", "period": "P1M", "count": 12},
        ],
    }
    schedule = compile_plan(plan)

Compilation is pure: no I/O, no shared state. Each call owns its own
ScheduleBuilder, so concurrent calls with independent inputs are safe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from token_vesting.core.schedule_builder import LinearVesting, ScheduleBuilder
from token_vesting.core.schedule_models import (
    FixedItem,
    OffsetedItem,
    OneTimeItem,
    VestingPlan,
    VestingSchedule,
)
from token_vesting.core.schedule_validator import validate, validate_plan_shape
from token_vesting.core.vesting_exceptions import (
    EmptyScheduleError,
    FirstItemOffsetedError,
    ValidationError,
    ValidationIssue,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompilerConfig:
    """Optional limits imposed by the execution engine that consumes schedules."""
    max_events: Optional[int] = None
    max_tranche_count: Optional[int] = None

    def validate(self):
        """Validate compiler limits"""
        if self.max_events is not None and self.max_events < 1:
            raise ValueError(f"Invalid max_events: {self.max_events}. Must be >= 1")
        if self.max_tranche_count is not None and self.max_tranche_count < 1:
            raise ValueError(f"Invalid max_tranche_count: {self.max_tranche_count}. Must be >= 1")


DEFAULT_COMPILER_CONFIG = CompilerConfig()


def to_vesting_plan(raw_plan: Any, config: CompilerConfig = DEFAULT_COMPILER_CONFIG) -> VestingPlan:
    """Validate an untyped plan mapping and convert it to a VestingPlan."""
    shape = validate_plan_shape(raw_plan)
    if not shape.schedule:
        raise EmptyScheduleError(f"Vesting plan {shape.name!r} has an empty schedule.")
    items = validate(shape.schedule, max_tranche_count=config.max_tranche_count)
    return VestingPlan(name=shape.name, amount=shape.amount, schedule=tuple(items))


_ITEM_INT_FIELDS = {
    FixedItem: (("time", 0), ("period", 0), ("count", 1)),
    OneTimeItem: (("time", 0),),
    OffsetedItem: (("offset", 0), ("period", 0), ("count", 1)),
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_plan(plan: VestingPlan, config: CompilerConfig) -> None:
    issues = []
    if not isinstance(plan.name, str) or not plan.name:
        issues.append(ValidationIssue(None, "name", "must be a non-empty string"))
    if not _is_int(plan.amount) or plan.amount <= 0:
        issues.append(ValidationIssue(None, "amount", "must be a positive integer"))
    for index, item in enumerate(plan.schedule):
        int_fields = _ITEM_INT_FIELDS.get(type(item))
        if int_fields is None:
            issues.append(ValidationIssue(index, "type", f"unsupported schedule item {type(item).__name__}"))
            continue
        for field, minimum in int_fields:
            value = getattr(item, field)
            if not _is_int(value) or value < minimum:
                bound = "a non-negative" if minimum == 0 else "a positive"
                issues.append(ValidationIssue(index, field, f"must be {bound} integer"))
        if item.part is not None and (not _is_int(item.part) or item.part < 1):
            issues.append(ValidationIssue(index, "part", "must be a positive integer"))
        count = getattr(item, "count", 1)
        if _is_int(count) and config.max_tranche_count is not None and count > config.max_tranche_count:
            issues.append(ValidationIssue(index, "count", f"must be at most {config.max_tranche_count}"))
    if issues:
        raise ValidationError.from_issues(issues)


def compile_plan(
    plan: Union[VestingPlan, Mapping[str, Any]],
    config: Optional[CompilerConfig] = None,
) -> VestingSchedule:
    """
    Compile a vesting plan into a release schedule.

    Args:
        plan: A VestingPlan or an untyped mapping (deserialized JSON/YAML)
        config: Optional engine limits

    Returns:
        The finished VestingSchedule

    Raises:
        CompileError: DurationFormatError, ValidationError, OverAllocationError,
            EmptyScheduleError, AmbiguousRemainderError, FirstItemOffsetedError,
            ZeroAllocationError or TooManyEventsError
    """
    config = config or DEFAULT_COMPILER_CONFIG
    if not isinstance(plan, VestingPlan):
        plan = to_vesting_plan(plan, config)

    _check_plan(plan, config)
    if not plan.schedule:
        raise EmptyScheduleError(f"Vesting plan {plan.name!r} has an empty schedule.")
    if isinstance(plan.schedule[0], OffsetedItem):
        raise FirstItemOffsetedError(
            f"Vesting plan {plan.name!r}: the first schedule item cannot be offseted."
        )

    builder = ScheduleBuilder.with_tokens(plan.amount, max_events=config.max_events)
    for item in plan.schedule:
        if isinstance(item, FixedItem):
            builder.add(LinearVesting(period=item.period, count=item.count, start_time=item.time), item.part)
        elif isinstance(item, OneTimeItem):
            builder.cliff(item.time, item.part)
        elif isinstance(item, OffsetedItem):
            builder.offseted_by(item.offset, LinearVesting.without_start(item.period, item.count), item.part)

    schedule = builder.build()
    logger.debug(
        "Compiled vesting plan %s: %d events",
        plan.name,
        schedule.event_count,
        extra={"event": "vesting.plan_compiled", "plan": plan.name},
    )
    return schedule


def compile_plans(
    raw_plans: Iterable[Union[VestingPlan, Mapping[str, Any]]],
    config: Optional[CompilerConfig] = None,
) -> Dict[str, VestingSchedule]:
    """
    Compile a batch of named plans, all or nothing.

    Returns:
        Mapping of plan name to schedule, in input order

    Raises:
        ValidationError: If two plans share a name
        CompileError: If any plan fails to compile
    """
    config = config or DEFAULT_COMPILER_CONFIG
    schedules: Dict[str, VestingSchedule] = {}
    for raw_plan in raw_plans:
        plan = raw_plan if isinstance(raw_plan, VestingPlan) else to_vesting_plan(raw_plan, config)
        if plan.name in schedules:
            raise ValidationError.from_issues(
                [ValidationIssue(None, "name", f"duplicate vesting plan name {plan.name!r}")]
            )
        schedules[plan.name] = compile_plan(plan, config)
    return schedules
