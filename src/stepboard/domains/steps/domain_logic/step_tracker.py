"""Fetch-then-aggregate orchestration around an injected step data source.

The tracker resolves the selected period, asks its source for samples once,
and hands them to the aggregation engine. The last totals per period are kept
as immutable snapshots that each refresh replaces wholesale.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from stepboard.core.storage.models import StepTotalsSnapshot
from stepboard.core.storage.repository import StepRepository, to_utc_iso
from stepboard.domains.steps.connectors import StepDataSource
from stepboard.domains.steps.domain_logic.aggregation import aggregate_range, daily_breakdown
from stepboard.domains.steps.domain_logic.periods import resolve_range
from stepboard.domains.steps.domain_logic.step_models import (
    DayBucket,
    PeriodTotals,
    StepSample,
    TimePeriod,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def make_clock(tz_name: str = "") -> Clock:
    """Return a clock in ``tz_name``, or in the system's local zone when blank."""
    if tz_name:
        tz = ZoneInfo(tz_name)
        return lambda: datetime.now(tz)
    return lambda: datetime.now().astimezone()


class StepTracker:
    """Computes step totals for a period from an injected data source.

    Usage::

        tracker = StepTracker(CompositeStepSource([...]), repository)
        totals = await tracker.compute_totals(TimePeriod.TODAY)
        days = await tracker.daily_breakdown(TimePeriod.LAST_7_DAYS)
    """

    def __init__(
        self,
        source: StepDataSource,
        repository: StepRepository | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._source = source
        self._repo = repository
        self._clock = clock or make_clock()
        self._latest: dict[TimePeriod, PeriodTotals] = {}

    @property
    def source(self) -> StepDataSource:
        return self._source

    def now(self) -> datetime:
        return self._clock()

    async def fetch_samples(
        self,
        period: TimePeriod,
        *,
        now: datetime | None = None,
    ) -> list[StepSample]:
        """Fetch the samples for ``period`` from the source.

        Raises:
            FetchError: Propagated from the data source.
        """
        now = now or self.now()
        start, end = resolve_range(period, now)
        samples = await self._source.fetch_samples(start, end)
        logger.info(
            "Fetched %d step samples for %s from %s",
            len(samples), TimePeriod(period).value, self._source.data_source,
        )
        return samples

    async def compute_totals(
        self,
        period: TimePeriod,
        *,
        now: datetime | None = None,
    ) -> PeriodTotals:
        """Fetch and aggregate ``period``; record the result when storage is on."""
        period = TimePeriod(period)
        now = now or self.now()
        start, end = resolve_range(period, now)
        samples = await self._source.fetch_samples(start, end)
        totals = aggregate_range(samples, start, end)

        self._latest[period] = totals
        logger.info(
            "Updated steps for %s - Automatic: %d, Manual: %d",
            period.value, totals.automatic_steps, totals.manual_steps,
        )

        if self._repo is not None:
            self._record(period, start, end, totals)
        return totals

    async def daily_breakdown(
        self,
        period: TimePeriod,
        *,
        now: datetime | None = None,
    ) -> list[DayBucket]:
        """Per-day totals for ``period``, oldest first."""
        now = now or self.now()
        samples = await self.fetch_samples(period, now=now)
        return daily_breakdown(samples, period, now)

    def latest_totals(self, period: TimePeriod) -> PeriodTotals | None:
        """The totals from the last successful ``compute_totals`` call, if any."""
        return self._latest.get(TimePeriod(period))

    def _record(
        self,
        period: TimePeriod,
        start: datetime,
        end: datetime,
        totals: PeriodTotals,
    ) -> None:
        try:
            self._repo.save_totals_snapshot(StepTotalsSnapshot(
                id="",
                timestamp=to_utc_iso(datetime.now(timezone.utc)),
                period=period.value,
                range_start=start.isoformat(),
                range_end=end.isoformat(),
                automatic_steps=totals.automatic_steps,
                manual_steps=totals.manual_steps,
                source=self._source.data_source,
                provenance=self._source.get_provenance(),
            ))
        except Exception:
            logger.exception("Failed to record step totals snapshot, continuing")
