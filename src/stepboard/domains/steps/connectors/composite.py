"""Composite step source: combines samples from several sources.

Unlike a priority fallback, steps from every source are returned together:
phone samples, watch samples and manual entries all contribute. Overlapping
samples are not deduplicated.
"""

from __future__ import annotations

import logging
from datetime import datetime

from stepboard.domains.steps.connectors import FetchError, StepDataSource
from stepboard.domains.steps.domain_logic.step_models import StepSample

logger = logging.getLogger(__name__)


class CompositeStepSource:
    """Merges multiple StepDataSources.

    Usage::

        composite = CompositeStepSource([
            apple_health_source,
            manual_source,
        ])
        samples = await composite.fetch_samples(start, end)
    """

    def __init__(self, sources: list[StepDataSource]) -> None:
        if not sources:
            raise ValueError("At least one source is required")
        self._sources = sources

    async def fetch_samples(self, start: datetime, end: datetime) -> list[StepSample]:
        """Concatenate samples from every source.

        A failing source is logged and skipped as long as another source
        answered; if all of them fail, the first error is raised.
        """
        samples: list[StepSample] = []
        errors: list[FetchError] = []

        for source in self._sources:
            try:
                samples.extend(await source.fetch_samples(start, end))
            except FetchError as exc:
                logger.warning("Step source %s failed: %s", source.data_source, exc)
                errors.append(exc)

        if len(errors) == len(self._sources):
            raise errors[0]
        return samples

    def is_connected(self) -> bool:
        """True if any source is connected."""
        return any(s.is_connected() for s in self._sources)

    @property
    def data_source(self) -> str:
        if len(self._sources) == 1:
            return self._sources[0].data_source
        return "composite"

    def get_provenance(self) -> dict[str, str]:
        """Return provenance info listing every source and the connected ones."""
        connected = [s.data_source for s in self._sources if s.is_connected()]
        return {
            "data_source": self.data_source,
            "active_sources": ", ".join(connected) if connected else "none",
            "data_source_note": (
                f"Composite source combining {len(self._sources)} source(s): "
                f"{' + '.join(s.data_source for s in self._sources)}."
            ),
        }
