"""Step aggregation: per-day buckets, then automatic/manual totals.

Given raw samples and a period, the range resolved for that period is split
into consecutive one-day buckets anchored at the range start (the last bucket
ends at the range end). A sample belongs to the bucket containing its
``start_time``; samples starting outside the range are ignored. Each sample is
classified and its count added to the bucket's automatic or manual total.

Overlapping samples reported by different sources are all counted.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from stepboard.domains.steps.domain_logic.classifier import classify
from stepboard.domains.steps.domain_logic.periods import align_to, resolve_range
from stepboard.domains.steps.domain_logic.step_models import (
    DayBucket,
    PeriodTotals,
    StepOrigin,
    StepSample,
    TimePeriod,
)

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


def _accumulate(
    samples: Iterable[StepSample],
    start: datetime,
    end: datetime,
) -> dict[int, list[int]]:
    """Map bucket index -> [automatic, manual] for every non-empty bucket."""
    buckets: dict[int, list[int]] = defaultdict(lambda: [0, 0])
    end = align_to(end, start)

    for sample in samples:
        moment = align_to(sample.start_time, start)
        if not (start <= moment < end):
            continue
        index = (moment - start) // _ONE_DAY
        slot = 1 if classify(sample) is StepOrigin.MANUAL else 0
        buckets[index][slot] += int(sample.step_count)

    return buckets


def aggregate_range(
    samples: Iterable[StepSample],
    start: datetime,
    end: datetime,
) -> PeriodTotals:
    """Automatic/manual totals for samples starting in ``[start, end)``."""
    buckets = _accumulate(samples, start, end)
    automatic = sum(counts[0] for counts in buckets.values())
    manual = sum(counts[1] for counts in buckets.values())
    logger.debug(
        "Aggregated %d day buckets: automatic=%d manual=%d",
        len(buckets), automatic, manual,
    )
    return PeriodTotals(automatic_steps=automatic, manual_steps=manual)


def aggregate(
    samples: Iterable[StepSample],
    period: TimePeriod,
    now: datetime,
) -> PeriodTotals:
    """Total automatic and manual steps for ``period`` as seen at ``now``.

    Args:
        samples: Raw samples from any number of sources.
        period: The named period to aggregate over.
        now: The current instant; the range ends here.

    Returns:
        PeriodTotals. ``{0, 0}`` when no sample falls inside the range.
    """
    start, end = resolve_range(period, now)
    return aggregate_range(samples, start, end)


def daily_breakdown(
    samples: Iterable[StepSample],
    period: TimePeriod,
    now: datetime,
) -> list[DayBucket]:
    """Per-day totals for ``period``, oldest first, skipping empty days."""
    start, end = resolve_range(period, now)
    buckets = _accumulate(samples, start, end)

    result = []
    for index in sorted(buckets):
        bucket_start = start + index * _ONE_DAY
        automatic, manual = buckets[index]
        result.append(DayBucket(
            start=bucket_start,
            end=min(bucket_start + _ONE_DAY, end),
            automatic_steps=automatic,
            manual_steps=manual,
        ))
    return result
