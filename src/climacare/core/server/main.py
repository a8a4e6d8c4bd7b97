"""ClimaCare server entry point — ``python -m climacare.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from climacare.core.config.settings import get_settings
from climacare.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the ClimaCare MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.climacare_log_level.upper(), logging.INFO)
    )

    logger = logging.getLogger(__name__)
    if not settings.climacare_allow_insecure_bind and not _is_loopback_host(settings.climacare_host):
        raise RuntimeError(
            "Refusing to bind ClimaCare to a non-loopback host without an auth layer. "
            "Set CLIMACARE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting ClimaCare advisory server on %s:%d",
        settings.climacare_host,
        settings.climacare_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.climacare_host,
        port=settings.climacare_port,
    )


if __name__ == "__main__":
    run()
