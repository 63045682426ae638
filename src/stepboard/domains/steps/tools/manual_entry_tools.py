"""MCP tools for manual step entry.

These tools let the user record steps a phone or watch missed (a walk
without the phone, a treadmill session). Entries are persisted to the data
bank and always count as manual steps.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from stepboard.core.storage.models import ManualStepEntry
from stepboard.core.storage.repository import RepositoryError, to_utc_iso
from stepboard.domains.steps.domain_logic.periods import align_to
from stepboard.domains.steps.domain_logic.step_tracker import Clock, make_clock

if TYPE_CHECKING:
    from stepboard.core.audit.logger import AuditLogger
    from stepboard.core.storage.repository import StepRepository

logger = logging.getLogger(__name__)


def _parse_time(value: str, default: datetime) -> datetime:
    """Parse an ISO 8601 timestamp, or return ``default`` when blank.

    A timestamp without an offset is read in ``default``'s time zone.
    """
    if not value:
        return default
    return align_to(datetime.fromisoformat(value), default)


def register_manual_entry_tools(
    mcp: FastMCP,
    repository: StepRepository,
    audit_logger: AuditLogger | None = None,
    *,
    clock: Clock | None = None,
) -> None:
    """Register manual step entry tools on the MCP server.

    ``clock`` supplies "now" and the time zone for timestamps given without
    an offset; it should be the StepTracker's clock so entries land on the
    same calendar days the totals use.
    """
    clock = clock or make_clock()

    @mcp.tool
    async def enter_manual_steps(
        ctx: Context,
        step_count: int,
        start_time: str = "",
        end_time: str = "",
        note: str = "",
    ) -> str:
        """Record steps by hand.

        Args:
            step_count: Number of steps walked (must not be negative).
            start_time: When the walk started (ISO 8601). Defaults to now.
            end_time: When the walk ended (ISO 8601). Defaults to start_time.
            note: Optional note, stored encrypted.
        """
        started = time.monotonic()
        try:
            start = _parse_time(start_time, clock())
            end = _parse_time(end_time, start)
        except ValueError as exc:
            return json.dumps({"status": "error", "message": f"Invalid timestamp: {exc}"})

        entry = ManualStepEntry(
            id="",
            start_time=to_utc_iso(start),
            end_time=to_utc_iso(end),
            step_count=step_count,
            note=note,
        )
        try:
            entry_id = repository.save_manual_entry(entry)
        except RepositoryError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="enter_manual_steps",
                tool_input={"step_count": step_count, "start_time": entry.start_time},
                data_source="manual",
                record_id=entry_id,
                duration_ms=(time.monotonic() - started) * 1000,
            )
        logger.info("Manual step entry saved: %d steps (entry %s)", step_count, entry_id)
        return json.dumps({
            "status": "saved",
            "entry_id": entry_id,
            "step_count": step_count,
            "start_time": entry.start_time,
            "end_time": entry.end_time,
        })

    @mcp.tool
    async def list_manual_entries(ctx: Context, limit: int = 20) -> str:
        """List previously entered manual steps, newest first.

        Args:
            limit: Maximum number of entries to return.
        """
        entries = repository.get_manual_entries(limit=limit)
        return json.dumps({
            "status": "ok",
            "count": len(entries),
            "entries": [
                {
                    "entry_id": e.id,
                    "step_count": e.step_count,
                    "start_time": e.start_time,
                    "end_time": e.end_time,
                    "note": e.note,
                }
                for e in entries
            ],
        }, indent=2)
