import logging

from messenger.config import Settings


def configure_logging(settings: Settings):
    """Configure the root logger from settings."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
