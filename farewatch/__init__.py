"""
FareWatch - scheduled flight price tracking and stopover route optimization.

Importing the package configures logging from the application settings.
"""

import logging

from farewatch.config import settings
from farewatch.utils.logging_config import setup_logging

__version__ = "0.1.0"
__app_name__ = "FareWatch"

setup_logging(
    level=settings.log_level,
    json_format=settings.environment == "production",
    log_file=settings.log_file,
)

logger = logging.getLogger(__name__)
logger.debug(f"{__app_name__} v{__version__} initialized ({settings.environment})")
