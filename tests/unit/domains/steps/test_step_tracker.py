"""Tests for StepTracker fetch-then-aggregate orchestration."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from stepboard.domains.steps.connectors import FetchError
from stepboard.domains.steps.domain_logic.periods import resolve_range
from stepboard.domains.steps.domain_logic.step_models import PeriodTotals, TimePeriod
from stepboard.domains.steps.domain_logic.step_tracker import StepTracker, make_clock


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class _ListSource:
    """In-memory source that records every requested range."""

    def __init__(self, samples=None, error: FetchError | None = None):
        self.samples = list(samples or [])
        self.error = error
        self.calls: list[tuple[datetime, datetime]] = []

    async def fetch_samples(self, start, end):
        self.calls.append((start, end))
        if self.error is not None:
            raise self.error
        return list(self.samples)

    def is_connected(self) -> bool:
        return True

    @property
    def data_source(self) -> str:
        return "test"

    def get_provenance(self) -> dict[str, str]:
        return {"data_source": "test"}


class TestComputeTotals:
    def test_today(self, fixed_now, fixed_clock, sample_factory):
        source = _ListSource([
            sample_factory(fixed_now.replace(hour=9), 100),
            sample_factory(fixed_now.replace(hour=10), 50, manual=True),
        ])
        tracker = StepTracker(source, clock=fixed_clock)

        totals = _run(tracker.compute_totals(TimePeriod.TODAY))

        assert totals == PeriodTotals(100, 50)
        assert source.calls == [resolve_range(TimePeriod.TODAY, fixed_now)]

    def test_source_returning_out_of_range_samples(self, fixed_now, fixed_clock, sample_factory):
        source = _ListSource([
            sample_factory(fixed_now - timedelta(days=3), 999),
            sample_factory(fixed_now.replace(hour=9), 1),
        ])
        totals = _run(StepTracker(source, clock=fixed_clock).compute_totals("today"))
        assert totals.total_steps == 1

    def test_latest_totals_replaced_each_refresh(self, fixed_now, fixed_clock, sample_factory):
        source = _ListSource([sample_factory(fixed_now.replace(hour=9), 10)])
        tracker = StepTracker(source, clock=fixed_clock)
        assert tracker.latest_totals(TimePeriod.TODAY) is None

        first = _run(tracker.compute_totals(TimePeriod.TODAY))
        source.samples.append(sample_factory(fixed_now.replace(hour=11), 5, manual=True))
        second = _run(tracker.compute_totals(TimePeriod.TODAY))

        assert first == PeriodTotals(10, 0)
        assert tracker.latest_totals(TimePeriod.TODAY) == PeriodTotals(10, 5)
        assert tracker.latest_totals(TimePeriod.TODAY) is second

    def test_fetch_error_propagates_and_keeps_previous(self, fixed_clock):
        source = _ListSource()
        tracker = StepTracker(source, clock=fixed_clock)
        _run(tracker.compute_totals(TimePeriod.TODAY))

        source.error = FetchError("denied", kind="unauthorized", source="test")
        with pytest.raises(FetchError) as info:
            _run(tracker.compute_totals(TimePeriod.TODAY))

        assert info.value.kind == "unauthorized"
        assert tracker.latest_totals(TimePeriod.TODAY) == PeriodTotals(0, 0)

    def test_explicit_now_overrides_clock(self, fixed_now, fixed_clock, sample_factory):
        earlier = fixed_now - timedelta(days=1)
        source = _ListSource([sample_factory(earlier.replace(hour=9), 70)])
        tracker = StepTracker(source, clock=fixed_clock)
        assert _run(tracker.compute_totals(TimePeriod.TODAY, now=earlier)).total_steps == 70

    def test_snapshot_recorded(self, fixed_now, fixed_clock, sample_factory, step_repository):
        source = _ListSource([sample_factory(fixed_now.replace(hour=9), 120, manual=True)])
        tracker = StepTracker(source, step_repository, clock=fixed_clock)

        _run(tracker.compute_totals(TimePeriod.LAST_7_DAYS))

        latest = step_repository.get_latest_totals("last_7_days")
        assert latest is not None
        assert (latest.automatic_steps, latest.manual_steps) == (0, 120)
        assert latest.source == "test"
        assert latest.range_end == fixed_now.isoformat()
        assert latest.provenance == {"data_source": "test"}

    def test_snapshot_failure_does_not_break_totals(self, fixed_clock, step_db, step_repository):
        step_db.close()
        tracker = StepTracker(_ListSource(), step_repository, clock=fixed_clock)
        assert _run(tracker.compute_totals(TimePeriod.TODAY)) == PeriodTotals(0, 0)


class TestDailyBreakdownAndSamples:
    def test_daily_breakdown(self, fixed_now, fixed_clock, sample_factory):
        source = _ListSource([
            sample_factory(fixed_now.replace(hour=9) - timedelta(days=1), 30),
            sample_factory(fixed_now.replace(hour=9), 20, manual=True),
        ])
        days = _run(StepTracker(source, clock=fixed_clock).daily_breakdown(TimePeriod.LAST_3_DAYS))
        assert [d.total_steps for d in days] == [30, 20]
        assert days[1].manual_steps == 20

    def test_fetch_samples_uses_period_range(self, fixed_now, fixed_clock):
        source = _ListSource()
        _run(StepTracker(source, clock=fixed_clock).fetch_samples(TimePeriod.ALL_TIME))
        start, end = source.calls[0]
        assert start == datetime.min.replace(tzinfo=fixed_now.tzinfo)
        assert end == fixed_now


class TestMakeClock:
    def test_named_zone(self):
        now = make_clock("UTC")()
        assert now.utcoffset() == timedelta(0)

    def test_local_zone_is_aware(self):
        now = make_clock()()
        assert now.tzinfo is not None
        assert abs(now - datetime.now(timezone.utc)) < timedelta(minutes=1)
