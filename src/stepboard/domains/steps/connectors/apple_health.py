"""Apple Health step source: reads step samples from an exported Health XML.

Users export via iOS Health app → Share → Export Health Data → produces
export.xml. This source parses that XML to implement StepDataSource.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from stepboard.domains.steps.connectors import FetchError
from stepboard.domains.steps.connectors.apple_health_parser import (
    AppleHealthParseError,
    parse_step_samples,
)
from stepboard.domains.steps.domain_logic.periods import starts_within
from stepboard.domains.steps.domain_logic.step_models import StepSample

logger = logging.getLogger(__name__)


class AppleHealthStepSource:
    """StepDataSource backed by an Apple Health XML export.

    The parsed export is cached and re-read whenever the file's modification
    time changes, so a fresh export is picked up on the next fetch.

    Usage::

        source = AppleHealthStepSource("/path/to/export.xml")
        if source.is_connected():
            samples = await source.fetch_samples(start, end)
    """

    def __init__(self, export_path: str) -> None:
        self._export_path = export_path
        self._cache: list[StepSample] | None = None
        self._cache_mtime: float | None = None

    async def fetch_samples(self, start: datetime, end: datetime) -> list[StepSample]:
        """Return export samples starting in ``[start, end)``."""
        samples = self._load()
        return [s for s in samples if starts_within(s.start_time, start, end)]

    def is_connected(self) -> bool:
        """Check if the export file exists."""
        return bool(self._export_path) and Path(self._export_path).exists()

    @property
    def data_source(self) -> str:
        return "apple_health"

    def get_provenance(self) -> dict[str, str]:
        return {
            "data_source": self.data_source,
            "data_source_note": "Step data from Apple Health export.",
            "export_path": self._export_path,
        }

    def _load(self) -> list[StepSample]:
        """Parse the export, reusing the cache while the file is unchanged."""
        if not self.is_connected():
            raise FetchError(
                f"Apple Health export not found: {self._export_path or '<unset>'}",
                kind="unavailable",
                source=self.data_source,
            )

        mtime = Path(self._export_path).stat().st_mtime
        if self._cache is not None and self._cache_mtime == mtime:
            return self._cache

        if self._cache is not None:
            logger.info("Apple Health export changed, re-parsing %s", self._export_path)
        try:
            self._cache = parse_step_samples(self._export_path)
        except AppleHealthParseError as exc:
            logger.exception("Failed to parse Apple Health export")
            raise FetchError(str(exc), kind="query_failed", source=self.data_source) from exc
        self._cache_mtime = mtime
        return self._cache
