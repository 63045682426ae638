"""Leaderboard ordering."""

from __future__ import annotations

from typing import Iterable

from stepboard.domains.steps.domain_logic.step_models import Participant


def rank(participants: Iterable[Participant]) -> list[Participant]:
    """Order participants by automatic steps, highest first.

    ``sorted`` is stable, so tied participants keep their input order.
    """
    return sorted(participants, key=lambda p: p.automatic_steps, reverse=True)
