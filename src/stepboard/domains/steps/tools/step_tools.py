"""MCP tools for step totals, per-day breakdown, sample details and leaderboard.

Each tool resolves the requested period, fetches samples through the
injected StepTracker, and returns JSON. Data-source failures come back as a
``{"status": "error"}`` payload instead of raising into the MCP layer.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from stepboard.domains.steps.connectors import FetchError, LeaderboardSource
from stepboard.domains.steps.domain_logic.leaderboard import rank
from stepboard.domains.steps.domain_logic.periods import align_to, resolve_range
from stepboard.domains.steps.domain_logic.step_models import TimePeriod

if TYPE_CHECKING:
    from stepboard.core.audit.logger import AuditLogger
    from stepboard.core.storage.repository import StepRepository
    from stepboard.domains.steps.domain_logic.step_tracker import StepTracker

logger = logging.getLogger(__name__)


def parse_period(value: str) -> TimePeriod | None:
    """Accept a period value ('last_7_days') or its label ('Last 7 Days')."""
    text = (value or "").strip()
    for period in TimePeriod:
        if text == period.value or text.lower() == period.label.lower():
            return period
    return None


def invalid_period(value: str) -> str:
    return json.dumps({
        "status": "error",
        "error_type": "invalid_period",
        "message": f"Unknown period {value!r}.",
        "valid_periods": [p.value for p in TimePeriod],
    })


def fetch_error(exc: FetchError) -> str:
    return json.dumps({
        "status": "error",
        "error_type": exc.kind,
        "data_source": exc.source,
        "message": str(exc),
    })


def register_step_tools(
    mcp: FastMCP,
    tracker: StepTracker,
    leaderboard_source: LeaderboardSource,
    repository: StepRepository | None = None,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register step query tools on the MCP server."""

    def _audit(
        tool_name: str,
        tool_input: dict[str, Any],
        start_time: float,
        *,
        error: FetchError | None = None,
    ) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            data_source=tracker.source.data_source,
            duration_ms=(time.monotonic() - start_time) * 1000,
            status="failure" if error else "success",
            error_type=error.kind if error else None,
        )

    @mcp.tool
    async def list_time_periods(ctx: Context) -> str:
        """List the time periods step tools accept."""
        return json.dumps({
            "status": "ok",
            "periods": [{"value": p.value, "label": p.label} for p in TimePeriod],
        })

    @mcp.tool
    async def step_totals(ctx: Context, period: str = "today") -> str:
        """Your automatic, manual and total steps for a time period.

        Automatic steps were recorded by a sensor; manual steps were entered
        by hand.

        Args:
            period: One of 'today', 'yesterday', 'last_3_days', 'last_7_days',
                'last_month', 'all_time'.
        """
        start_time = time.monotonic()
        selected = parse_period(period)
        if selected is None:
            return invalid_period(period)

        now = tracker.now()
        start, end = resolve_range(selected, now)
        try:
            totals = await tracker.compute_totals(selected, now=now)
        except FetchError as exc:
            logger.warning("Failed to fetch steps for %s: %s", selected.value, exc)
            _audit("step_totals", {"period": selected.value}, start_time, error=exc)
            return fetch_error(exc)

        _audit("step_totals", {"period": selected.value}, start_time)
        return json.dumps({
            "status": "ok",
            "period": selected.value,
            "period_label": selected.label,
            "range_start": start.isoformat(),
            "range_end": end.isoformat(),
            **totals.to_dict(),
            "data_context": tracker.source.get_provenance(),
        })

    @mcp.tool
    async def daily_steps(ctx: Context, period: str = "last_7_days") -> str:
        """Day-by-day automatic and manual steps for a time period.

        Days without any samples are omitted.

        Args:
            period: Time period to break down (default: 'last_7_days').
        """
        start_time = time.monotonic()
        selected = parse_period(period)
        if selected is None:
            return invalid_period(period)

        try:
            days = await tracker.daily_breakdown(selected)
        except FetchError as exc:
            logger.warning("Failed to fetch daily steps for %s: %s", selected.value, exc)
            _audit("daily_steps", {"period": selected.value}, start_time, error=exc)
            return fetch_error(exc)

        _audit("daily_steps", {"period": selected.value}, start_time)
        return json.dumps({
            "status": "ok",
            "period": selected.value,
            "days": [d.to_dict() for d in days],
            "total_steps": sum(d.total_steps for d in days),
        }, indent=2)

    @mcp.tool
    async def step_samples(ctx: Context, period: str = "today", limit: int = 100) -> str:
        """Raw step samples for a period, newest first.

        Each sample shows its count, start and end time, source app, device
        and metadata (including whether it was entered by hand).

        Args:
            period: Time period to list (default: 'today').
            limit: Maximum number of samples to return (default: 100).
        """
        start_time = time.monotonic()
        selected = parse_period(period)
        if selected is None:
            return invalid_period(period)

        now = tracker.now()
        try:
            samples = await tracker.fetch_samples(selected, now=now)
        except FetchError as exc:
            logger.warning("Error fetching step data for %s: %s", selected.value, exc)
            _audit("step_samples", {"period": selected.value}, start_time, error=exc)
            return fetch_error(exc)

        ordered = sorted(samples, key=lambda s: align_to(s.start_time, now), reverse=True)
        _audit("step_samples", {"period": selected.value, "limit": limit}, start_time)
        return json.dumps({
            "status": "ok",
            "period": selected.value,
            "count": len(ordered),
            "samples": [s.to_dict() for s in ordered[:max(limit, 0)]],
        }, indent=2)

    @mcp.tool
    async def step_leaderboard(ctx: Context) -> str:
        """Your friends ranked by automatic steps, highest first."""
        start_time = time.monotonic()
        try:
            friends = await leaderboard_source.fetch_participants()
        except FetchError as exc:
            logger.warning("Failed to fetch leaderboard: %s", exc)
            _audit("step_leaderboard", {}, start_time, error=exc)
            return fetch_error(exc)

        ranked = rank(friends)
        _audit("step_leaderboard", {}, start_time)
        return json.dumps({
            "status": "ok",
            "data_source": leaderboard_source.data_source,
            "leaderboard": [
                {"position": i, **friend.to_dict()}
                for i, friend in enumerate(ranked, start=1)
            ],
        }, indent=2)

    if repository is None:
        return

    @mcp.tool
    async def step_totals_history(ctx: Context, period: str = "", limit: int = 30) -> str:
        """Previously computed step totals, newest first.

        Args:
            period: Only show totals for this period; blank for all periods.
            limit: Maximum number of entries (default: 30).
        """
        selected = None
        if period:
            selected = parse_period(period)
            if selected is None:
                return invalid_period(period)

        history = repository.get_totals_history(
            period=selected.value if selected else None,
            limit=limit,
        )
        return json.dumps({
            "status": "ok",
            "count": len(history),
            "history": [h.to_dict() for h in history],
        }, indent=2)
