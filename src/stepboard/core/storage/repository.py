"""Step data repository: CRUD operations for the step data bank.

The repository mediates between domain objects (ManualStepEntry,
StepTotalsSnapshot) and the SQLite database, using NoteCipher to
encrypt/decrypt free-text notes. All timestamps are stored as UTC ISO 8601
strings with microsecond precision so they sort lexicographically.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from stepboard.core.storage.database import StepDatabase
from stepboard.core.storage.encryption import NoteCipher
from stepboard.core.storage.models import ManualStepEntry, StepTotalsSnapshot

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def to_utc_iso(moment: datetime) -> str:
    """Normalize a datetime to the stored UTC string form.

    Naive datetimes are read as local time.
    """
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class StepRepository:
    """CRUD repository for manual step entries and totals history.

    Usage::

        db = StepDatabase(":memory:")
        db.initialize()
        repo = StepRepository(db, NoteCipher(key="..."))

        entry_id = repo.save_manual_entry(entry)
        history = repo.get_totals_history(period="today", limit=30)
    """

    def __init__(self, database: StepDatabase, cipher: NoteCipher) -> None:
        self._db = database
        self._cipher = cipher

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return to_utc_iso(datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Manual step entries
    # ------------------------------------------------------------------

    def save_manual_entry(self, entry: ManualStepEntry) -> str:
        """Persist a manual step entry.

        Args:
            entry: The entry to save. If ``entry.id`` is empty, a UUID is
                generated. Time bounds must already be UTC ISO strings.

        Returns:
            The entry ID.

        Raises:
            RepositoryError: If the step count is negative or the range is inverted.
        """
        if entry.step_count < 0:
            raise RepositoryError(f"step_count must be non-negative, got {entry.step_count}")
        if entry.end_time < entry.start_time:
            raise RepositoryError("end_time must not be before start_time")

        eid = entry.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO manual_step_entries
               (id, start_time, end_time, step_count, source_name, note_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                eid,
                entry.start_time,
                entry.end_time,
                entry.step_count,
                entry.source_name,
                self._cipher.encrypt(entry.note),
                entry.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved manual step entry %s (%d steps)", eid, entry.step_count)
        return eid

    def get_manual_entries(
        self,
        *,
        since: str | None = None,
        until: str | None = None,
        limit: int | None = None,
    ) -> list[ManualStepEntry]:
        """Query manual entries by start time.

        Args:
            since: UTC ISO lower bound on ``start_time`` (inclusive).
            until: UTC ISO upper bound on ``start_time`` (exclusive).
            limit: Maximum results to return; all when None.

        Returns:
            Decrypted entries, newest first.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if since:
            conditions.append("start_time >= ?")
            params.append(since)
        if until:
            conditions.append("start_time < ?")
            params.append(until)

        query = "SELECT * FROM manual_step_entries"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY start_time DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def count_manual_entries(self) -> int:
        row = self._db.connection.execute(
            "SELECT COUNT(*) FROM manual_step_entries"
        ).fetchone()
        return row[0]

    def delete_manual_entry(self, entry_id: str) -> bool:
        """Delete one manual entry. Returns False if it did not exist."""
        conn = self._db.connection
        cursor = conn.execute(
            "DELETE FROM manual_step_entries WHERE id = ?", (entry_id,)
        )
        conn.commit()
        if cursor.rowcount:
            logger.info("Deleted manual step entry %s", entry_id)
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Totals history
    # ------------------------------------------------------------------

    def save_totals_snapshot(self, snapshot: StepTotalsSnapshot) -> str:
        """Persist a computed period total and return its ID."""
        sid = snapshot.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO step_snapshots (
                id, timestamp, period, range_start, range_end,
                automatic_steps, manual_steps, source, provenance_json, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                sid,
                snapshot.timestamp,
                snapshot.period,
                snapshot.range_start,
                snapshot.range_end,
                snapshot.automatic_steps,
                snapshot.manual_steps,
                snapshot.source,
                json.dumps(snapshot.provenance, separators=(",", ":")),
                snapshot.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.debug(
            "Saved totals snapshot %s (period=%s, source=%s)",
            sid, snapshot.period, snapshot.source,
        )
        return sid

    def get_totals_history(
        self,
        *,
        period: str | None = None,
        since: str | None = None,
        limit: int = 30,
    ) -> list[StepTotalsSnapshot]:
        """Query stored totals, newest first.

        Args:
            period: Filter by TimePeriod value (e.g., 'today').
            since: ISO 8601 lower bound on the computation timestamp.
            limit: Maximum results.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if period:
            conditions.append("period = ?")
            params.append(period)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        query = "SELECT * FROM step_snapshots"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_snapshot(row) for row in rows]

    def get_latest_totals(self, period: str | None = None) -> StepTotalsSnapshot | None:
        results = self.get_totals_history(period=period, limit=1)
        return results[0] if results else None

    def count_snapshots(self) -> int:
        """Return total number of stored totals snapshots."""
        row = self._db.connection.execute("SELECT COUNT(*) FROM step_snapshots").fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Deletion / data retention
    # ------------------------------------------------------------------

    def purge_snapshots_before(self, before_timestamp: str) -> int:
        """Delete totals snapshots computed before ``before_timestamp``.

        Returns:
            Number of snapshots deleted.
        """
        conn = self._db.connection
        cursor = conn.execute(
            "DELETE FROM step_snapshots WHERE timestamp < ?", (before_timestamp,)
        )
        conn.commit()
        if cursor.rowcount:
            logger.info("Purged %d snapshots older than %s", cursor.rowcount, before_timestamp)
        return cursor.rowcount

    def purge_snapshots_before_days(self, days: int) -> int:
        """Delete totals snapshots older than N days."""
        if days < 1:
            raise RepositoryError("days must be at least 1")
        cutoff = to_utc_iso(datetime.now(timezone.utc) - timedelta(days=days))
        return self.purge_snapshots_before(cutoff)

    def delete_all_data(self) -> dict[str, int]:
        """Delete every manual entry and totals snapshot.

        Returns:
            Row counts removed per table.
        """
        conn = self._db.connection
        entries = conn.execute("DELETE FROM manual_step_entries").rowcount
        snapshots = conn.execute("DELETE FROM step_snapshots").rowcount
        conn.commit()
        logger.warning(
            "Deleted ALL step data: %d manual entries, %d snapshots", entries, snapshots
        )
        return {"manual_entries": entries, "snapshots": snapshots}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_entry(self, row: Any) -> ManualStepEntry:
        return ManualStepEntry(
            id=row["id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            step_count=row["step_count"],
            source_name=row["source_name"],
            note=self._cipher.decrypt(row["note_enc"] or ""),
            created_at=row["created_at"],
        )

    def _row_to_snapshot(self, row: Any) -> StepTotalsSnapshot:
        provenance = {}
        if row["provenance_json"]:
            try:
                provenance = json.loads(row["provenance_json"])
            except (json.JSONDecodeError, TypeError):
                logger.warning("Unreadable provenance on snapshot %s", row["id"])

        return StepTotalsSnapshot(
            id=row["id"],
            timestamp=row["timestamp"],
            period=row["period"],
            range_start=row["range_start"],
            range_end=row["range_end"],
            automatic_steps=row["automatic_steps"],
            manual_steps=row["manual_steps"],
            source=row["source"],
            provenance=provenance,
            created_at=row["created_at"],
        )
