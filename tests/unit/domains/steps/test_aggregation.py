"""Tests for the step aggregation engine."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from stepboard.domains.steps.domain_logic.aggregation import (
    aggregate,
    aggregate_range,
    daily_breakdown,
)
from stepboard.domains.steps.domain_logic.periods import resolve_range
from stepboard.domains.steps.domain_logic.step_models import PeriodTotals, TimePeriod

EST = timezone(timedelta(hours=-5))


class TestAggregate:
    def test_empty_samples(self, fixed_now):
        for period in TimePeriod:
            assert aggregate([], period, fixed_now) == PeriodTotals(0, 0)

    def test_automatic_and_manual_split(self, fixed_now, sample_factory):
        samples = [
            sample_factory(fixed_now.replace(hour=9), 100),
            sample_factory(fixed_now.replace(hour=10), 50, manual=True),
        ]
        totals = aggregate(samples, TimePeriod.TODAY, fixed_now)
        assert totals == PeriodTotals(automatic_steps=100, manual_steps=50)
        assert totals.total_steps == 150

    def test_samples_outside_range_ignored(self, fixed_now, sample_factory):
        samples = [
            sample_factory(fixed_now.replace(hour=0) - timedelta(seconds=1), 1000),
            sample_factory(fixed_now, 2000),
            sample_factory(fixed_now + timedelta(hours=1), 3000),
            sample_factory(fixed_now.replace(hour=12), 7),
        ]
        assert aggregate(samples, TimePeriod.TODAY, fixed_now) == PeriodTotals(7, 0)

    def test_strict_start_rule(self, fixed_now, sample_factory):
        # Started before midnight, ended after: belongs to yesterday only
        spanning = sample_factory(fixed_now.replace(hour=23, minute=50) - timedelta(days=1), 80, minutes=30)
        assert aggregate([spanning], TimePeriod.TODAY, fixed_now).total_steps == 0
        assert aggregate([spanning], TimePeriod.LAST_3_DAYS, fixed_now).total_steps == 80

    def test_sample_at_range_start_included(self, fixed_now, sample_factory):
        start, _ = resolve_range(TimePeriod.TODAY, fixed_now)
        assert aggregate([sample_factory(start, 42)], TimePeriod.TODAY, fixed_now).total_steps == 42

    def test_zero_length_sample_included(self, fixed_now, sample_factory):
        sample = sample_factory(fixed_now.replace(hour=8), 12, minutes=0)
        assert sample.start_time == sample.end_time
        assert aggregate([sample], TimePeriod.TODAY, fixed_now).automatic_steps == 12

    def test_overlapping_sources_are_double_counted(self, fixed_now, sample_factory):
        t = fixed_now.replace(hour=11)
        phone = sample_factory(t, 500, source="iPhone", device="iPhone")
        watch = sample_factory(t + timedelta(minutes=2), 480, source="Apple Watch", device="Apple Watch")
        assert aggregate([phone, watch], TimePeriod.TODAY, fixed_now).automatic_steps == 980

    def test_toggling_manual_flag_moves_count(self, fixed_now, sample_factory):
        other = sample_factory(fixed_now.replace(hour=8), 300)
        sample = sample_factory(fixed_now.replace(hour=9), 250)
        before = aggregate([other, sample], TimePeriod.TODAY, fixed_now)
        after = aggregate([other, replace(sample, is_manually_entered=True)], TimePeriod.TODAY, fixed_now)
        assert after.automatic_steps == before.automatic_steps - 250
        assert after.manual_steps == before.manual_steps + 250
        assert after.total_steps == before.total_steps

    def test_sum_matches_samples_in_range(self, fixed_now, sample_factory):
        samples = [
            sample_factory(fixed_now - timedelta(hours=h), 10 + h, manual=(h % 4 == 0))
            for h in range(0, 24 * 10, 5)
        ]
        start, end = resolve_range(TimePeriod.LAST_7_DAYS, fixed_now)
        expected = sum(s.step_count for s in samples if start <= s.start_time < end)
        totals = aggregate(samples, TimePeriod.LAST_7_DAYS, fixed_now)
        assert totals.automatic_steps + totals.manual_steps == expected

    def test_yesterday_also_counts_today(self, fixed_now, sample_factory):
        samples = [
            sample_factory(fixed_now.replace(hour=10) - timedelta(days=1), 100),
            sample_factory(fixed_now.replace(hour=10), 40),
        ]
        assert aggregate(samples, TimePeriod.YESTERDAY, fixed_now).total_steps == 140

    def test_all_time_includes_old_samples(self, fixed_now, sample_factory):
        old = sample_factory(datetime(2001, 6, 1, 12, tzinfo=timezone.utc), 900)
        recent = sample_factory(fixed_now.replace(hour=9), 100, manual=True)
        assert aggregate([old, recent], TimePeriod.ALL_TIME, fixed_now) == PeriodTotals(900, 100)

    def test_samples_in_other_time_zones(self, fixed_now, sample_factory):
        late_yesterday = sample_factory(datetime(2026, 2, 10, 4, tzinfo=timezone.utc), 70)
        early_today = sample_factory(datetime(2026, 2, 10, 6, tzinfo=timezone.utc), 30)
        assert aggregate([late_yesterday, early_today], TimePeriod.TODAY, fixed_now).total_steps == 30

    def test_integer_accumulation(self, fixed_now, sample_factory):
        base = fixed_now.replace(hour=1)
        samples = [sample_factory(base + timedelta(seconds=i), 1) for i in range(10_000)]
        totals = aggregate(samples, TimePeriod.TODAY, fixed_now)
        assert totals.automatic_steps == 10_000
        assert isinstance(totals.automatic_steps, int)

    def test_accepts_generators(self, fixed_now, sample_factory):
        samples = (sample_factory(fixed_now.replace(hour=h), 10) for h in range(5))
        assert aggregate(samples, TimePeriod.TODAY, fixed_now).total_steps == 50

    def test_aggregate_range_matches_aggregate(self, fixed_now, sample_factory):
        samples = [sample_factory(fixed_now - timedelta(hours=h * 7), 11) for h in range(20)]
        start, end = resolve_range(TimePeriod.LAST_3_DAYS, fixed_now)
        assert aggregate_range(samples, start, end) == aggregate(samples, TimePeriod.LAST_3_DAYS, fixed_now)


class TestDailyBreakdown:
    def test_buckets_are_days_anchored_at_start(self, fixed_now, sample_factory):
        samples = [
            sample_factory(datetime(2026, 2, 4, 9, tzinfo=EST), 100),
            sample_factory(datetime(2026, 2, 4, 18, tzinfo=EST), 20, manual=True),
            sample_factory(datetime(2026, 2, 7, 12, tzinfo=EST), 300),
            sample_factory(datetime(2026, 2, 10, 8, tzinfo=EST), 50),
        ]
        days = daily_breakdown(samples, TimePeriod.LAST_7_DAYS, fixed_now)

        assert [d.start for d in days] == [
            datetime(2026, 2, 4, tzinfo=EST),
            datetime(2026, 2, 7, tzinfo=EST),
            datetime(2026, 2, 10, tzinfo=EST),
        ]
        assert (days[0].automatic_steps, days[0].manual_steps) == (100, 20)
        assert days[0].end == datetime(2026, 2, 5, tzinfo=EST)
        assert days[1].total_steps == 300

    def test_last_bucket_is_partial(self, fixed_now, sample_factory):
        days = daily_breakdown([sample_factory(fixed_now.replace(hour=8), 5)], TimePeriod.TODAY, fixed_now)
        assert len(days) == 1
        assert days[0].end == fixed_now

    def test_empty(self, fixed_now):
        assert daily_breakdown([], TimePeriod.LAST_MONTH, fixed_now) == []

    def test_sums_to_aggregate(self, fixed_now, sample_factory):
        samples = [
            sample_factory(fixed_now - timedelta(hours=h * 3), 17, manual=(h % 3 == 0))
            for h in range(60)
        ]
        days = daily_breakdown(samples, TimePeriod.LAST_MONTH, fixed_now)
        totals = aggregate(samples, TimePeriod.LAST_MONTH, fixed_now)
        assert sum(d.automatic_steps for d in days) == totals.automatic_steps
        assert sum(d.manual_steps for d in days) == totals.manual_steps

    def test_all_time_bucket_dates(self, fixed_now, sample_factory):
        days = daily_breakdown(
            [sample_factory(datetime(2020, 3, 1, 12, tzinfo=EST), 9)],
            TimePeriod.ALL_TIME,
            fixed_now,
        )
        assert days[0].start == datetime(2020, 3, 1, tzinfo=EST)
