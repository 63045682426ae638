"""Manual entry step source: reads user-entered steps from the data bank.

Users enter steps the phone or watch missed via MCP tools. Every sample this
source returns is flagged as user-entered and therefore counts as manual.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from stepboard.core.storage.database import DatabaseError
from stepboard.core.storage.encryption import EncryptionError
from stepboard.core.storage.models import ManualStepEntry
from stepboard.core.storage.repository import StepRepository, to_utc_iso
from stepboard.domains.steps.connectors import FetchError
from stepboard.domains.steps.domain_logic.periods import is_unbounded_start
from stepboard.domains.steps.domain_logic.step_models import (
    WAS_USER_ENTERED_KEY,
    StepSample,
)

logger = logging.getLogger(__name__)

ENTRY_ID_KEY = "StepboardEntryID"


def entry_to_sample(entry: ManualStepEntry) -> StepSample:
    """Convert a stored entry into a user-entered StepSample."""
    metadata = {WAS_USER_ENTERED_KEY: True, ENTRY_ID_KEY: entry.id}
    if entry.note:
        metadata["note"] = entry.note
    return StepSample.from_metadata(
        start_time=datetime.fromisoformat(entry.start_time),
        end_time=datetime.fromisoformat(entry.end_time),
        step_count=entry.step_count,
        source_name=entry.source_name,
        metadata=metadata,
    )


class ManualStepSource:
    """StepDataSource backed by manually entered steps in the data bank."""

    def __init__(self, repository: StepRepository) -> None:
        self._repo = repository

    async def fetch_samples(self, start: datetime, end: datetime) -> list[StepSample]:
        """Return manual entries starting in ``[start, end)``.

        Raises:
            FetchError: If the data bank cannot be read or a note cannot be
                decrypted with the configured key.
        """
        since = None if is_unbounded_start(start) else to_utc_iso(start)
        try:
            entries = self._repo.get_manual_entries(since=since, until=to_utc_iso(end))
        except (EncryptionError, DatabaseError, sqlite3.Error) as exc:
            logger.exception("Failed to read manual step entries")
            raise FetchError(str(exc), kind="query_failed", source=self.data_source) from exc
        return [entry_to_sample(e) for e in entries]

    def is_connected(self) -> bool:
        """Manual entry is always 'connected' if the repository exists."""
        return True

    @property
    def data_source(self) -> str:
        return "manual"

    def get_provenance(self) -> dict[str, str]:
        count = self._repo.count_manual_entries()
        return {
            "data_source": self.data_source,
            "data_source_note": f"Manually entered steps ({count} entries stored).",
        }
