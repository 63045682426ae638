"""Stepboard MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from stepboard.core.audit.logger import AuditLogger
from stepboard.core.config.settings import get_settings
from stepboard.core.storage.database import StepDatabase
from stepboard.core.storage.encryption import EncryptionError, NoteCipher
from stepboard.core.storage.repository import StepRepository
from stepboard.domains.steps.connectors import LeaderboardSource, StepDataSource
from stepboard.domains.steps.connectors.apple_health import AppleHealthStepSource
from stepboard.domains.steps.connectors.composite import CompositeStepSource
from stepboard.domains.steps.connectors.manual_entry import ManualStepSource
from stepboard.domains.steps.connectors.providers import (
    MockStepSource,
    StaticLeaderboardSource,
)
from stepboard.domains.steps.domain_logic.step_tracker import Clock, StepTracker, make_clock
from stepboard.domains.steps.tools.step_tools import register_step_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    step_source_override: StepDataSource | None = None,
    leaderboard_source_override: LeaderboardSource | None = None,
    repository_override: StepRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
    clock_override: Clock | None = None,
) -> FastMCP:
    """Create and configure the Stepboard MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted step data bank (when a key is configured)
    3. Assembles the step data sources into one composite source
    4. Creates the StepTracker and the leaderboard source
    5. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        "Stepboard",
        instructions=(
            "Personal step counter. Reports automatic (sensed) and manual "
            "(hand-entered) steps per time period, a day-by-day breakdown, "
            "raw sample details and a friends leaderboard."
        ),
    )

    # --- Initialize encrypted storage (step data bank) ---
    repository: StepRepository | None = None
    audit_logger: AuditLogger | None = audit_logger_override
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            cipher = NoteCipher(settings.encryption_key)
            step_db = StepDatabase(settings.db_path)
            step_db.initialize()
            repository = StepRepository(step_db, cipher)
            if audit_logger is None:
                audit_logger = AuditLogger(step_db)
            logger.info(
                "Step data bank initialized: %s (schema v%d)",
                settings.db_path,
                step_db.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence; manual entry is disabled")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured, running without persistence. "
            "Set ENCRYPTION_KEY to enable manual step entry and totals history."
        )

    # --- Initialize step data sources ---
    if step_source_override is not None:
        step_source = step_source_override
    else:
        sources: list[StepDataSource] = []
        if settings.apple_health_export_path:
            sources.append(AppleHealthStepSource(settings.apple_health_export_path))
            logger.info("Using Apple Health export %s", settings.apple_health_export_path)
        elif settings.use_mock_data:
            sources.append(MockStepSource())
            logger.info("Using mock step data source")
        if repository is not None:
            sources.append(ManualStepSource(repository))
        if not sources:
            logger.warning("No step source configured; falling back to mock data")
            sources.append(MockStepSource())
        step_source = CompositeStepSource(sources)

    if leaderboard_source_override is not None:
        leaderboard_source = leaderboard_source_override
    else:
        leaderboard_source = StaticLeaderboardSource(settings.leaderboard_latency_seconds)

    tracker = StepTracker(
        step_source,
        repository,
        clock=clock_override or make_clock(settings.stepboard_timezone),
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "Stepboard",
            "version": VERSION,
            "step_source": step_source.data_source,
            "step_source_connected": step_source.is_connected(),
            "leaderboard_source": leaderboard_source.data_source,
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["manual_entries_stored"] = repository.count_manual_entries()
            status["snapshots_stored"] = repository.count_snapshots()
        return status

    register_step_tools(server, tracker, leaderboard_source, repository, audit_logger)
    logger.info("Step tools registered")

    # --- Register storage-backed tools ---
    if repository is not None:
        from stepboard.domains.steps.tools.data_management_tools import (
            register_data_management_tools,
        )
        from stepboard.domains.steps.tools.manual_entry_tools import (
            register_manual_entry_tools,
        )

        register_manual_entry_tools(server, repository, audit_logger, clock=tracker.now)
        register_data_management_tools(server, repository, audit_logger)
        logger.info("Manual entry and data management tools registered")

    if audit_logger is not None:
        from stepboard.domains.steps.tools.audit_tools import register_audit_tools

        register_audit_tools(server, audit_logger)
        logger.info("Audit tools registered")

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
