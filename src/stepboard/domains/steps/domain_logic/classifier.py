"""Classify step samples as automatic (sensed) or manual (user-entered)."""

from __future__ import annotations

from stepboard.domains.steps.domain_logic.step_models import StepOrigin, StepSample


def classify(sample: StepSample) -> StepOrigin:
    """Return MANUAL only for samples flagged as user-entered."""
    if sample.is_manually_entered is True:
        return StepOrigin.MANUAL
    return StepOrigin.AUTOMATIC
