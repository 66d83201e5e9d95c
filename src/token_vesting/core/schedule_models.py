"""
Vesting plan and compiled schedule data structures.

Input side: ScheduleItem variants (FixedItem, OneTimeItem, OffsetedItem)
grouped into a VestingPlan. Output side: release events (LinearRelease,
LumpRelease) grouped into an immutable VestingSchedule.

All token and time values are Python integers; no floating point is used.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class ScheduleItemKind(Enum):
    """Schedule item types accepted in a vesting plan"""
    FIXED = "fixed"
    ONETIME = "onetime"
    OFFSETED = "offseted"


@dataclass(frozen=True)
class FixedItem:
    """Linear tranches starting at an absolute time."""
    time: int
    period: int
    count: int = 1
    part: Optional[int] = None

    kind = ScheduleItemKind.FIXED


@dataclass(frozen=True)
class OneTimeItem:
    """Single lump release at an absolute time (cliffs)."""
    time: int
    part: Optional[int] = None

    kind = ScheduleItemKind.ONETIME


@dataclass(frozen=True)
class OffsetedItem:
    """Linear tranches anchored ``offset`` seconds after the previous release."""
    offset: int
    period: int = 0
    count: int = 1
    part: Optional[int] = None

    kind = ScheduleItemKind.OFFSETED


ScheduleItem = Union[FixedItem, OneTimeItem, OffsetedItem]


@dataclass(frozen=True)
class VestingPlan:
    """Declarative token release plan: total amount split across schedule items."""
    name: str
    amount: int
    schedule: Tuple[ScheduleItem, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "schedule", tuple(self.schedule))


def split_evenly(total: int, count: int) -> Tuple[int, ...]:
    """Split ``total`` into ``count`` floored shares, the last taking the remainder."""
    if count < 1:
        raise ValueError("count must be >= 1")
    share = total // count
    return (share,) * (count - 1) + (total - share * (count - 1),)


@dataclass(frozen=True)
class LinearRelease:
    """
    ``tranche_count`` releases spaced ``period`` seconds apart from ``start_time``.

    ``tranche_amounts`` always sums to ``token_amount``.
    """
    start_time: int
    period: int
    tranche_count: int
    token_amount: int
    tranche_amounts: Tuple[int, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.tranche_amounts:
            object.__setattr__(
                self, "tranche_amounts", split_evenly(self.token_amount, self.tranche_count)
            )
        elif len(self.tranche_amounts) != self.tranche_count or sum(self.tranche_amounts) != self.token_amount:
            raise ValueError("tranche_amounts must have tranche_count entries summing to token_amount")

    @property
    def final_time(self) -> int:
        return self.start_time + self.period * (self.tranche_count - 1)

    def release_times(self) -> Tuple[int, ...]:
        return tuple(self.start_time + i * self.period for i in range(self.tranche_count))

    def released_at(self, now: int) -> int:
        """Tokens released by this event at or before ``now``."""
        if now < self.start_time:
            return 0
        if now >= self.final_time:
            return self.token_amount
        # period > 0 here, otherwise final_time == start_time
        unlocked = (now - self.start_time) // self.period + 1
        return sum(self.tranche_amounts[:unlocked])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "linear",
            "start_time": self.start_time,
            "period": self.period,
            "tranche_count": self.tranche_count,
            "token_amount": self.token_amount,
            "tranche_amounts": list(self.tranche_amounts),
            "final_time": self.final_time,
        }


@dataclass(frozen=True)
class LumpRelease:
    """Single release of ``token_amount`` tokens at ``time``."""
    time: int
    token_amount: int

    @property
    def start_time(self) -> int:
        return self.time

    @property
    def final_time(self) -> int:
        return self.time

    def release_times(self) -> Tuple[int, ...]:
        return (self.time,)

    def released_at(self, now: int) -> int:
        return self.token_amount if now >= self.time else 0

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "lump", "time": self.time, "token_amount": self.token_amount}


ReleaseEvent = Union[LinearRelease, LumpRelease]


@dataclass(frozen=True)
class VestingSchedule:
    """
    Compiled, immutable release schedule.

    Events keep plan order; they are not sorted by time. The token amounts of
    all events sum exactly to ``total_token_count``.
    """
    total_token_count: int
    events: Tuple[ReleaseEvent, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(self.events))

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def start_time(self) -> int:
        return min(event.start_time for event in self.events)

    @property
    def final_time(self) -> int:
        return max(event.final_time for event in self.events)

    def released_at(self, now: int) -> int:
        """Total tokens released at or before ``now``."""
        return sum(event.released_at(now) for event in self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_token_count": self.total_token_count,
            "event_count": self.event_count,
            "events": [event.to_dict() for event in self.events],
        }
