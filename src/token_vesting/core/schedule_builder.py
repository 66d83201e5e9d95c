"""
Accumulate-then-finalize builder for vesting schedules.

Release times are resolved as entries are added, so offset entries can anchor
on the final release of the entry before them. Token allocation is resolved in
``build()`` once every part weight is known:

- Without a remainder entry, each entry receives
  ``floor(total * part / sum(parts))`` and the last entry also takes the
  flooring dust.
- With a remainder entry (``part=None``), explicit parts are absolute token
  counts and the remainder entry absorbs ``total - sum(parts)``.

Within an entry, tokens are split across tranches the same way: floored
shares with the remainder on the last tranche.

``ending_at`` cuts the last linear entry short: tranches after the end time
are released together in a cliff at that time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from token_vesting.core.schedule_models import (
    LinearRelease,
    LumpRelease,
    ReleaseEvent,
    VestingSchedule,
)
from token_vesting.core.vesting_exceptions import (
    AmbiguousRemainderError,
    EmptyScheduleError,
    FirstItemOffsetedError,
    OverAllocationError,
    TooManyEventsError,
    ZeroAllocationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinearVesting:
    """Shape of a release entry: ``count`` tranches ``period`` seconds apart."""
    period: int
    count: int = 1
    start_time: Optional[int] = None

    def __post_init__(self) -> None:
        if self.period < 0:
            raise ValueError("Unlock period cannot be negative.")
        if self.count < 1:
            raise ValueError("Unlock count must be at least 1.")
        if self.start_time is not None and self.start_time < 0:
            raise ValueError("Start time cannot be negative.")

    @classmethod
    def without_start(cls, period: int, count: int = 1) -> "LinearVesting":
        return cls(period=period, count=count)

    @classmethod
    def cliff(cls, time: int) -> "LinearVesting":
        return cls(period=0, count=1, start_time=time)

    def starting_at(self, start_time: int) -> "LinearVesting":
        return LinearVesting(period=self.period, count=self.count, start_time=start_time)

    @property
    def last(self) -> int:
        if self.start_time is None:
            raise ValueError("Vesting has no start time.")
        return self.start_time + self.period * (self.count - 1)


@dataclass(frozen=True)
class _Entry:
    vesting: LinearVesting
    part: Optional[int]
    lump: bool
    # tranches after end_time collapse into a cliff at end_time
    end_time: Optional[int] = None

    @property
    def last(self) -> int:
        return self.end_time if self.end_time is not None else self.vesting.last

    @property
    def event_count(self) -> int:
        return 1 if self.end_time is None else 2


class ScheduleBuilder:
    """
    Collects release entries for one schedule.

    Usage:
        schedule = (
            ScheduleBuilder.with_tokens(1_000_000)
            .cliff(listing, 60)
            .offseted_by(6 * MONTH, LinearVesting.without_start(2 * MONTH, 6), None)
            .build()
        )
    """

    def __init__(self, token_count: int, max_events: Optional[int] = None):
        if token_count <= 0:
            raise ValueError("Token count must be positive.")
        self.token_count = token_count
        self.max_events = max_events
        self._entries: List[_Entry] = []

    @classmethod
    def with_tokens(cls, token_count: int, max_events: Optional[int] = None) -> "ScheduleBuilder":
        return cls(token_count, max_events=max_events)

    def __len__(self) -> int:
        return len(self._entries)

    def _push(self, vesting: LinearVesting, part: Optional[int], lump: bool) -> "ScheduleBuilder":
        if part is not None and part < 1:
            raise ValueError("Part must be a positive integer.")
        self._entries.append(_Entry(vesting=vesting, part=part, lump=lump))
        return self

    def add(self, vesting: LinearVesting, part: Optional[int] = None) -> "ScheduleBuilder":
        """Add linear tranches anchored at ``vesting.start_time``."""
        if vesting.start_time is None:
            raise ValueError("Linear vesting added with add() needs a start time.")
        return self._push(vesting, part, lump=False)

    def cliff(self, time: int, part: Optional[int] = None) -> "ScheduleBuilder":
        """Add a one-time release at ``time``."""
        return self._push(LinearVesting.cliff(time), part, lump=True)

    def offseted_by(
        self,
        offset: int,
        vesting: LinearVesting,
        part: Optional[int] = None,
    ) -> "ScheduleBuilder":
        """Add linear tranches starting ``offset`` seconds after the previous entry's last release."""
        if not self._entries:
            raise FirstItemOffsetedError(
                "Offset release has no preceding release to anchor on."
            )
        if offset < 0:
            raise ValueError("Offset cannot be negative.")
        anchor = self._entries[-1].last + offset
        return self._push(vesting.starting_at(anchor), part, lump=False)

    def offseted(self, vesting: LinearVesting, part: Optional[int] = None) -> "ScheduleBuilder":
        """Add linear tranches one ``vesting.period`` after the previous entry's last release."""
        return self.offseted_by(vesting.period, vesting, part)

    def ending_at(self, end_time: int) -> "ScheduleBuilder":
        """
        Cut the last entry off at ``end_time``.

        Tranches of the last linear entry that fall after ``end_time`` are
        released together in a cliff at ``end_time``. The entry keeps
        ``floor(tokens * kept / count)`` tokens for its kept tranches and the
        cliff takes the rest. Does nothing if the entry already ends by
        ``end_time``.
        """
        if not self._entries:
            raise EmptyScheduleError("Vesting schedule has no items to end.")
        entry = self._entries[-1]
        if end_time >= entry.last:
            return self
        vesting = entry.vesting
        if entry.lump or vesting.period == 0 or end_time < vesting.start_time:
            raise ValueError("End time must fall within the last linear release.")
        self._entries[-1] = replace(entry, end_time=end_time)
        return self

    def _allocate(self) -> List[int]:
        total = self.token_count
        remainder_indices = [i for i, entry in enumerate(self._entries) if entry.part is None]

        if len(remainder_indices) > 1:
            raise AmbiguousRemainderError(
                f"Schedule items {remainder_indices} all omit part; at most one remainder item is allowed.",
                indices=remainder_indices,
            )

        if remainder_indices:
            allocations = [entry.part or 0 for entry in self._entries]
            explicit = sum(allocations)
            if explicit > total:
                raise OverAllocationError(
                    f"Explicit parts allocate {explicit} tokens but only {total} are available.",
                    total_tokens=total,
                    allocated_tokens=explicit,
                )
            allocations[remainder_indices[0]] = total - explicit
            return allocations

        weight_base = sum(entry.part for entry in self._entries)
        allocations = [total * entry.part // weight_base for entry in self._entries]
        allocations[-1] = total - sum(allocations[:-1])
        return allocations

    def build(self) -> VestingSchedule:
        """
        Finalize the schedule.

        Raises:
            EmptyScheduleError: No entries were added
            AmbiguousRemainderError: More than one entry omits its part
            OverAllocationError: Explicit parts exceed the token count
            ZeroAllocationError: An entry would release no tokens
            TooManyEventsError: Entry count exceeds ``max_events``
        """
        if not self._entries:
            raise EmptyScheduleError("Vesting schedule has no items.")

        event_count = sum(entry.event_count for entry in self._entries)
        if self.max_events is not None and event_count > self.max_events:
            raise TooManyEventsError(
                f"Vesting schedule has {event_count} events; at most {self.max_events} are allowed.",
                details={"event_count": event_count, "max_events": self.max_events},
            )

        allocations = self._allocate()

        events: List[ReleaseEvent] = []
        for index, (entry, tokens) in enumerate(zip(self._entries, allocations)):
            if tokens == 0:
                raise ZeroAllocationError(
                    f"Schedule item {index} would release zero tokens.", index=index
                )
            vesting = entry.vesting
            if entry.lump:
                events.append(LumpRelease(time=vesting.start_time, token_amount=tokens))
            elif entry.end_time is not None:
                kept = 1 + (entry.end_time - vesting.start_time) // vesting.period
                linear_tokens = tokens * kept // vesting.count
                if linear_tokens == 0:
                    raise ZeroAllocationError(
                        f"Schedule item {index} would release zero tokens before {entry.end_time}.",
                        index=index,
                    )
                events.append(
                    LinearRelease(
                        start_time=vesting.start_time,
                        period=vesting.period,
                        tranche_count=kept,
                        token_amount=linear_tokens,
                    )
                )
                events.append(LumpRelease(time=entry.end_time, token_amount=tokens - linear_tokens))
            else:
                events.append(
                    LinearRelease(
                        start_time=vesting.start_time,
                        period=vesting.period,
                        tranche_count=vesting.count,
                        token_amount=tokens,
                    )
                )

        schedule = VestingSchedule(total_token_count=self.token_count, events=tuple(events))
        logger.debug(
            "Built vesting schedule with %d events for %d tokens",
            schedule.event_count,
            schedule.total_token_count,
            extra={"event": "vesting.schedule_built"},
        )
        return schedule
