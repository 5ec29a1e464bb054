"""
Subscription Catalog.

Tracks which games are playable through Xbox Game Pass, EA Play,
PlayStation Plus and Ubisoft+, deduplicated into one catalog.
"""

from subscription_catalog.config import Settings, get_settings
from subscription_catalog.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
