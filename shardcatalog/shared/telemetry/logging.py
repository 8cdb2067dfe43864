"""Logging configuration for the shard catalog"""
import logging
import sys

from shardcatalog.infrastructure.config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure application-wide logging"""
    log_level = logging.DEBUG if settings.debug else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # SQL echo is controlled by database_echo, not by the debug level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
