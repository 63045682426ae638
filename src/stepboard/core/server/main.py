"""Stepboard server entry point, ``python -m stepboard.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from stepboard.core.config.settings import get_settings
from stepboard.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the Stepboard MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.stepboard_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(__name__)
    if not settings.stepboard_allow_insecure_bind and not _is_loopback_host(settings.stepboard_host):
        raise RuntimeError(
            "Refusing to bind Stepboard to a non-loopback host without an auth layer. "
            "Set STEPBOARD_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting Stepboard server on %s:%d",
        settings.stepboard_host,
        settings.stepboard_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.stepboard_host,
        port=settings.stepboard_port,
    )


if __name__ == "__main__":
    run()
