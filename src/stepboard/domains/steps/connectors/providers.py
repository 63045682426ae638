"""Simulated StepDataSource and LeaderboardSource implementations."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from stepboard.domains.steps.connectors.mock_data import (
    MOCK_HISTORY_DAYS,
    get_mock_friends,
    get_mock_step_samples,
)
from stepboard.domains.steps.domain_logic.step_models import Participant, StepSample

logger = logging.getLogger(__name__)


class MockStepSource:
    """Uses the mock sample generator. Always available."""

    async def fetch_samples(self, start: datetime, end: datetime) -> list[StepSample]:
        return get_mock_step_samples(start, end)

    def is_connected(self) -> bool:
        return False

    @property
    def data_source(self) -> str:
        return "mock"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": (
                f"Using simulated step data (last {MOCK_HISTORY_DAYS} days). "
                "Configure an Apple Health export for real measurements."
            ),
        }


class StaticLeaderboardSource:
    """Stands in for the friends API with a fixed list.

    ``latency_seconds`` simulates the round trip of the real network call.
    """

    def __init__(self, latency_seconds: float = 0.0) -> None:
        self._latency = max(latency_seconds, 0.0)

    async def fetch_participants(self) -> list[Participant]:
        if self._latency:
            await asyncio.sleep(self._latency)
        friends = get_mock_friends()
        logger.debug("Simulated leaderboard fetch returned %d friends", len(friends))
        return friends

    @property
    def data_source(self) -> str:
        return "simulated"
