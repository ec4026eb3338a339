"""Server entry point."""

import logging

import uvicorn

from api.app import create_app
from utils.config import get_config
from utils.di_container import configure_container
from utils.exceptions import ConfigurationError
from utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def run_server(log_level: str | None = None) -> int:
    """Main entry point for the API server.

    Returns:
        Exit code; 1 when the settings are invalid
    """
    try:
        config = get_config()
    except ConfigurationError as e:
        # Logging setup reads the same settings
        logging.basicConfig()
        logger.error(str(e))
        return 1

    setup_logging(log_level=log_level)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    container = configure_container(config=config)
    app = create_app(container, config)

    logger.info("=" * 50)
    logger.info(
        f"Serving {config.app.name} on http://{config.server.host}:{config.server.port}"
        f"{config.server.api_prefix}/"
    )
    logger.info("=" * 50)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )
    return 0
