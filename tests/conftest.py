"""Shared test fixtures for Stepboard tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("APPLE_HEALTH_EXPORT_PATH", "")
    monkeypatch.setenv("USE_MOCK_DATA", "true")
    monkeypatch.setenv("LEADERBOARD_LATENCY_SECONDS", "0")
    monkeypatch.setenv("STEPBOARD_TIMEZONE", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from stepboard.domains.steps.domain_logic.step_models import StepSample  # noqa: E402

# US Eastern standard time, fixed offset so tests need no tz database
EST = timezone(timedelta(hours=-5))

# Tuesday afternoon, used as "now" throughout
FIXED_NOW = datetime(2026, 2, 10, 15, 30, tzinfo=EST)


def make_sample(
    start: datetime,
    count: int = 100,
    *,
    manual: bool = False,
    minutes: int = 10,
    source: str = "iPhone",
    device: str | None = "iPhone",
) -> StepSample:
    """Create a step sample with sensible defaults."""
    metadata = {"HKWasUserEntered": True} if manual else {}
    return StepSample.from_metadata(
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        step_count=count,
        source_name=source,
        device_name=device,
        metadata=metadata,
    )


@pytest.fixture
def sample_factory():
    return make_sample


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def step_db():
    """Create an in-memory StepDatabase for testing."""
    from stepboard.core.storage.database import StepDatabase

    db = StepDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def note_cipher():
    """Create a NoteCipher with a fresh key."""
    from stepboard.core.storage.encryption import NoteCipher

    return NoteCipher(NoteCipher.generate_key())


@pytest.fixture
def step_repository(step_db, note_cipher):
    """Create a StepRepository backed by in-memory SQLite."""
    from stepboard.core.storage.repository import StepRepository

    return StepRepository(step_db, note_cipher)


@pytest.fixture
def audit_logger(step_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from stepboard.core.audit.logger import AuditLogger

    return AuditLogger(step_db)
