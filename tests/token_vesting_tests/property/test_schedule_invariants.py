"""
Property-based tests for compiled vesting schedule invariants.

No token may be created or lost: event amounts sum exactly to the plan
amount, and tranche amounts sum exactly to their event's amount. Compilation
must also be deterministic.

Uses Hypothesis for property-based testing with random inputs.
"""

from hypothesis import given, settings, strategies as st

from token_vesting.core.duration_parser import DAY, HOUR, MINUTE, MONTH, WEEK, YEAR, parse_duration
from token_vesting.core.schedule_compiler import compile_plan
from token_vesting.core.schedule_models import LinearRelease, split_evenly

BASE_TIME = 1_704_067_200

parts = st.one_of(st.none(), st.integers(min_value=1, max_value=1_000))
counts = st.integers(min_value=1, max_value=48)
durations = st.sampled_from(["P", "PT1H", "P1D", "P1W", "P1M", "P3M", "P1Y", "P1DT12H"])


@st.composite
def schedule_items(draw, first):
    kind = draw(st.sampled_from(["fixed", "onetime"] if first else ["fixed", "onetime", "offseted"]))
    item = {"type": kind, "part": draw(parts)}
    if kind in ("fixed", "onetime"):
        item["time"] = BASE_TIME + draw(st.integers(min_value=0, max_value=5 * YEAR))
    if kind == "offseted":
        item["offset"] = draw(durations)
    if kind in ("fixed", "offseted"):
        item["period"] = draw(durations)
        item["count"] = draw(counts)
    return item


@st.composite
def vesting_plans(draw):
    first = draw(schedule_items(first=True))
    rest = draw(st.lists(schedule_items(first=False), max_size=10))
    items = [first] + rest
    # at most one remainder item
    remainder_positions = [i for i, item in enumerate(items) if item["part"] is None]
    for position in remainder_positions[1:]:
        items[position]["part"] = 1
    # large enough that no item floors to zero tokens
    amount = draw(st.integers(min_value=10**6, max_value=10**18))
    return {"name": "generated", "amount": amount, "schedule": items}


class TestScheduleInvariants:
    """Property tests for token conservation and determinism."""

    @given(plan=vesting_plans())
    @settings(max_examples=200, deadline=None)
    def test_event_amounts_sum_to_plan_amount(self, plan):
        schedule = compile_plan(plan)
        assert sum(event.token_amount for event in schedule.events) == plan["amount"]
        assert schedule.total_token_count == plan["amount"]
        assert schedule.event_count == len(plan["schedule"])

    @given(plan=vesting_plans())
    @settings(max_examples=100, deadline=None)
    def test_tranche_amounts_sum_to_event_amount(self, plan):
        schedule = compile_plan(plan)
        for event in schedule.events:
            if isinstance(event, LinearRelease):
                assert len(event.tranche_amounts) == event.tranche_count
                assert sum(event.tranche_amounts) == event.token_amount
                assert all(amount >= 0 for amount in event.tranche_amounts)

    @given(plan=vesting_plans())
    @settings(max_examples=100, deadline=None)
    def test_offseted_items_anchor_on_previous_event(self, plan):
        schedule = compile_plan(plan)
        for index, item in enumerate(plan["schedule"]):
            if item["type"] == "offseted":
                previous = schedule.events[index - 1]
                expected = previous.final_time + parse_duration(item["offset"])
                assert schedule.events[index].start_time == expected

    @given(plan=vesting_plans())
    @settings(max_examples=50, deadline=None)
    def test_compilation_is_deterministic(self, plan):
        first = compile_plan(plan)
        assert compile_plan(plan) == first
        assert compile_plan(plan).to_dict() == first.to_dict()

    @given(plan=vesting_plans(), offset=st.integers(min_value=0, max_value=10 * YEAR))
    @settings(max_examples=100, deadline=None)
    def test_released_amount_is_monotonic_and_bounded(self, plan, offset):
        schedule = compile_plan(plan)
        now = BASE_TIME + offset
        released = schedule.released_at(now)
        assert 0 <= released <= schedule.total_token_count
        assert schedule.released_at(now + DAY) >= released
        assert schedule.released_at(schedule.final_time) == schedule.total_token_count


class TestSplitInvariants:
    """Property tests for floor-then-remainder splitting."""

    @given(total=st.integers(min_value=0, max_value=10**30), count=st.integers(min_value=1, max_value=300))
    def test_split_evenly_conserves_total(self, total, count):
        shares = split_evenly(total, count)
        assert len(shares) == count
        assert sum(shares) == total
        assert all(share == shares[0] for share in shares[:-1])
        assert shares[0] <= shares[-1] < shares[0] + count


class TestDurationArithmetic:
    """Property tests for duration component arithmetic."""

    @given(
        y=st.integers(min_value=0, max_value=100),
        mo=st.integers(min_value=0, max_value=100),
        w=st.integers(min_value=0, max_value=100),
        d=st.integers(min_value=0, max_value=1000),
        h=st.integers(min_value=0, max_value=1000),
        mi=st.integers(min_value=0, max_value=1000),
        s=st.integers(min_value=0, max_value=10**6),
    )
    def test_components_add_up(self, y, mo, w, d, h, mi, s):
        text = f"P{y}Y{mo}M{w}W{d}DT{h}H{mi}M{s}S"
        expected = y * YEAR + mo * MONTH + w * WEEK + d * DAY + h * HOUR + mi * MINUTE + s
        assert parse_duration(text) == expected
