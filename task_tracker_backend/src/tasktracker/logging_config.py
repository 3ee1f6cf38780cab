from __future__ import annotations

import logging

from .settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# PUBLIC_INTERFACE
def configure_logging(settings: Settings) -> None:
    """Configure root logging once at startup from the resolved settings."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger(__package__).setLevel(settings.log_level)
