"""
Process entrypoint: ``python -m api.server`` or the ``song-catalog-api`` script.

Configures logging, then runs uvicorn on the host and port from settings.
"""

import logging

import uvicorn

from api.deps import get_settings
from infrastructure.log_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the API server."""
    settings = get_settings()
    configure_logging(logging.DEBUG if settings.is_development else logging.INFO)
    logger.info("Starting song catalog API on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
