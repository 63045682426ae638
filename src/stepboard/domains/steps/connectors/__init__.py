"""Step data connectors: abstraction layer for step sample retrieval."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from stepboard.domains.steps.domain_logic.step_models import Participant, StepSample


class FetchError(Exception):
    """Raised when a data source cannot deliver samples.

    ``kind`` is one of ``unavailable``, ``unauthorized`` or ``query_failed``.
    """

    def __init__(self, message: str, *, kind: str = "query_failed", source: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.source = source


@runtime_checkable
class StepDataSource(Protocol):
    """Abstract interface for step sample retrieval.

    The aggregation engine only ever sees the returned samples; it does not
    know whether they came from an Apple Health export, manual entry, or a
    mock generator.
    """

    async def fetch_samples(self, start: datetime, end: datetime) -> list[StepSample]:
        """Samples whose ``start_time`` lies in ``[start, end)``.

        Raises:
            FetchError: If the source is unavailable or the query fails.
        """
        ...

    def is_connected(self) -> bool:
        """Whether real step data is available."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the source: 'apple_health', 'manual', 'mock' or 'composite'."""
        ...

    def get_provenance(self) -> dict[str, str]:
        """Return provenance metadata describing where samples come from."""
        ...


@runtime_checkable
class LeaderboardSource(Protocol):
    """Supplies the friends shown on the leaderboard."""

    async def fetch_participants(self) -> list[Participant]:
        ...

    @property
    def data_source(self) -> str:
        ...
