"""MCP tools for step data management (deletion, purge, retention).

All deletions are audit-logged when an audit logger is configured.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from stepboard.core.audit.logger import AuditLogger
    from stepboard.core.storage.repository import StepRepository

logger = logging.getLogger(__name__)


def register_data_management_tools(
    mcp: FastMCP,
    repository: StepRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data management tools on the MCP server."""

    @mcp.tool
    async def delete_manual_entry(ctx: Context, entry_id: str) -> str:
        """Delete one manually entered step record.

        Args:
            entry_id: The UUID returned by enter_manual_steps.
        """
        start_time = time.monotonic()
        deleted = repository.delete_manual_entry(entry_id)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if not deleted:
            return json.dumps({
                "status": "not_found",
                "entry_id": entry_id,
                "message": "No manual entry found with that ID.",
            })

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_manual_entry",
                record_id=entry_id,
                count=1,
            )
        return json.dumps({
            "status": "deleted",
            "entry_id": entry_id,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def purge_old_snapshots(ctx: Context, older_than_days: int = 365) -> str:
        """Delete stored step totals computed more than N days ago.

        Manual entries are kept; only the totals history is purged.

        Args:
            older_than_days: Delete totals older than this many days (default: 365).
        """
        if older_than_days < 1:
            return json.dumps({
                "status": "error",
                "message": "older_than_days must be at least 1.",
            })

        start_time = time.monotonic()
        count = repository.purge_snapshots_before_days(older_than_days)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None and count > 0:
            audit_logger.log_data_delete(
                tool_name="purge_old_snapshots",
                count=count,
                metadata={"older_than_days": older_than_days},
            )

        return json.dumps({
            "status": "purged",
            "snapshots_deleted": count,
            "older_than_days": older_than_days,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def delete_all_step_data(ctx: Context, confirm: str = "") -> str:
        """Permanently delete ALL manual entries and stored step totals.

        Args:
            confirm: Must be exactly 'DELETE_ALL' to proceed.
        """
        if confirm != "DELETE_ALL":
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To delete all step data, call this tool with "
                    "confirm='DELETE_ALL'. This action cannot be undone."
                ),
            })

        start_time = time.monotonic()
        counts = repository.delete_all_data()
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_all_step_data",
                count=sum(counts.values()),
                metadata={"confirmed": True, **counts},
            )

        return json.dumps({
            "status": "all_deleted",
            **counts,
            "duration_ms": round(elapsed_ms, 1),
            "message": "All step data has been permanently deleted.",
        })
