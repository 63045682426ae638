"""Data models for the step persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ManualStepEntry:
    """Steps the user typed in, with UTC ISO 8601 time bounds.

    The free-text note is stored encrypted at rest.
    """

    id: str
    start_time: str
    end_time: str
    step_count: int
    source_name: str = "Stepboard"
    note: str = ""
    created_at: str = ""


@dataclass
class StepTotalsSnapshot:
    """A computed period total, kept for history."""

    id: str
    timestamp: str  # ISO 8601, when the totals were computed
    period: str  # TimePeriod value
    range_start: str
    range_end: str
    automatic_steps: int
    manual_steps: int
    source: str  # 'apple_health', 'manual', 'mock', 'composite'
    provenance: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    @property
    def total_steps(self) -> int:
        return self.automatic_steps + self.manual_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.id,
            "timestamp": self.timestamp,
            "period": self.period,
            "range_start": self.range_start,
            "range_end": self.range_end,
            "automatic_steps": self.automatic_steps,
            "manual_steps": self.manual_steps,
            "total_steps": self.total_steps,
            "source": self.source,
        }
