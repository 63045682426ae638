"""Step-count domain models and constants."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# HealthKit metadata key marking a sample as typed in by the user
WAS_USER_ENTERED_KEY = "HKWasUserEntered"


class TimePeriod(str, Enum):
    """Named time period selectable in the step views."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_3_DAYS = "last_3_days"
    LAST_7_DAYS = "last_7_days"
    LAST_MONTH = "last_month"
    ALL_TIME = "all_time"

    @property
    def label(self) -> str:
        return _PERIOD_LABELS[self]


_PERIOD_LABELS = {
    TimePeriod.TODAY: "Today",
    TimePeriod.YESTERDAY: "Yesterday",
    TimePeriod.LAST_3_DAYS: "Last 3 Days",
    TimePeriod.LAST_7_DAYS: "Last 7 Days",
    TimePeriod.LAST_MONTH: "Last Month",
    TimePeriod.ALL_TIME: "All Time",
}


class StepOrigin(str, Enum):
    """How a step sample was recorded."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"


def was_user_entered(metadata: Mapping[str, Any] | None) -> bool:
    """True only when the metadata explicitly flags the sample as user-entered.

    Missing metadata, a missing key, ``False`` or any non-boolean value all
    mean the sample was sensed.
    """
    if not metadata:
        return False
    return metadata.get(WAS_USER_ENTERED_KEY) is True


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepSample:
    """One raw step measurement with its provenance.

    ``is_manually_entered`` is the flag classification reads. Use
    :meth:`from_metadata` to derive it from ``HKWasUserEntered``; building a
    sample directly with metadata that carries that key and a flag that
    disagrees with it is rejected.
    """

    start_time: datetime
    end_time: datetime
    step_count: int
    source_name: str
    device_name: str | None = None
    is_manually_entered: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.step_count < 0:
            raise ValueError(f"step_count must be non-negative, got {self.step_count}")
        if (
            WAS_USER_ENTERED_KEY in self.metadata
            and was_user_entered(self.metadata) != self.is_manually_entered
        ):
            raise ValueError(
                f"is_manually_entered={self.is_manually_entered} contradicts "
                f"metadata {WAS_USER_ENTERED_KEY}={self.metadata[WAS_USER_ENTERED_KEY]!r}"
            )

    @classmethod
    def from_metadata(
        cls,
        *,
        start_time: datetime,
        end_time: datetime,
        step_count: int,
        source_name: str,
        device_name: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> StepSample:
        """Build a sample, deriving the manual-entry flag from its metadata."""
        metadata = dict(metadata or {})
        return cls(
            start_time=start_time,
            end_time=end_time,
            step_count=step_count,
            source_name=source_name,
            device_name=device_name,
            is_manually_entered=was_user_entered(metadata),
            metadata=metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_count": self.step_count,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "source_name": self.source_name,
            "device_name": self.device_name,
            "is_manually_entered": self.is_manually_entered,
            "metadata": {k: _jsonable(v) for k, v in self.metadata.items()},
        }


@dataclass(frozen=True)
class PeriodTotals:
    """Automatic and manual step totals for one period."""

    automatic_steps: int = 0
    manual_steps: int = 0

    @property
    def total_steps(self) -> int:
        return self.automatic_steps + self.manual_steps

    def to_dict(self) -> dict[str, int]:
        return {
            "automatic_steps": self.automatic_steps,
            "manual_steps": self.manual_steps,
            "total_steps": self.total_steps,
        }


@dataclass(frozen=True)
class DayBucket:
    """Totals for one day-long (or trailing partial) window of a period."""

    start: datetime
    end: datetime
    automatic_steps: int = 0
    manual_steps: int = 0

    @property
    def total_steps(self) -> int:
        return self.automatic_steps + self.manual_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "automatic_steps": self.automatic_steps,
            "manual_steps": self.manual_steps,
            "total_steps": self.total_steps,
        }


@dataclass(frozen=True)
class Participant:
    """A leaderboard entry (the user's friends)."""

    id: str
    name: str
    automatic_steps: int
    manual_steps: int

    @property
    def total_steps(self) -> int:
        return self.automatic_steps + self.manual_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "automatic_steps": self.automatic_steps,
            "manual_steps": self.manual_steps,
            "total_steps": self.total_steps,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
