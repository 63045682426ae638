"""Simulated step data for development and testing.

Samples are deterministic: the same range always yields the same samples, so
totals computed from mock data are stable across runs.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from stepboard.domains.steps.domain_logic.periods import (
    align_to,
    is_unbounded_start,
    start_of_day,
    starts_within,
)
from stepboard.domains.steps.domain_logic.step_models import (
    WAS_USER_ENTERED_KEY,
    Participant,
    StepSample,
)

# Mock history never reaches further back than this
MOCK_HISTORY_DAYS = 30

# Waking hours that get an hourly phone sample
_ACTIVE_HOURS = range(7, 22)

# Every Nth day carries a manual entry at 18:00
_MANUAL_EVERY_N_DAYS = 3
_MANUAL_STEPS = 500


def get_mock_friends() -> list[Participant]:
    """Return the simulated friend leaderboard."""
    return [
        Participant(id="1", name="Alice", automatic_steps=7500, manual_steps=500),
        Participant(id="2", name="Bob", automatic_steps=9000, manual_steps=1000),
        Participant(id="3", name="Charlie", automatic_steps=7300, manual_steps=200),
    ]


def _hourly_count(day_ordinal: int, hour: int) -> int:
    return 180 + (day_ordinal * 31 + hour * 17) % 420


def get_mock_step_samples(start: datetime, end: datetime) -> list[StepSample]:
    """Return mock samples starting in ``[start, end)``, oldest first."""
    first_day = start_of_day(end) - timedelta(days=MOCK_HISTORY_DAYS)
    if not is_unbounded_start(start):
        first_day = max(first_day, start_of_day(align_to(start, end)))

    samples: list[StepSample] = []
    day = first_day
    while day <= end:
        ordinal = day.toordinal()
        for hour in _ACTIVE_HOURS:
            sample_start = day.replace(hour=hour)
            samples.append(StepSample.from_metadata(
                start_time=sample_start,
                end_time=sample_start + timedelta(minutes=50),
                step_count=_hourly_count(ordinal, hour),
                source_name="iPhone",
                device_name="iPhone",
            ))
        if ordinal % _MANUAL_EVERY_N_DAYS == 0:
            entry_start = day.replace(hour=18)
            samples.append(StepSample.from_metadata(
                start_time=entry_start,
                end_time=entry_start + timedelta(minutes=30),
                step_count=_MANUAL_STEPS,
                source_name="Health",
                metadata={WAS_USER_ENTERED_KEY: True},
            ))
        day += timedelta(days=1)

    return [s for s in samples if starts_within(s.start_time, start, end)]
