"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Stepboard server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: there is no auth layer in front of the step tools.
    stepboard_host: str = "127.0.0.1"
    stepboard_port: int = 8001
    stepboard_log_level: str = "info"
    # Binding to a non-loopback host is refused unless this is set true.
    stepboard_allow_insecure_bind: bool = False

    # Storage (step data bank)
    db_path: str = "~/.stepboard/steps.db"

    # Encryption (enables the data bank when set)
    encryption_key: str = ""

    # Connectors
    apple_health_export_path: str = ""
    # Simulated samples are used when no Apple Health export is configured
    use_mock_data: bool = True
    # Seconds the simulated leaderboard call takes
    leaderboard_latency_seconds: float = 1.0

    # IANA zone used for day boundaries; blank means the system's local zone
    stepboard_timezone: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
