"""
Core Components

Configuration and logging setup.
"""

from setudb.core.config import DatabaseConfig, Settings, configure_logging, settings

__all__ = [
    "DatabaseConfig",
    "Settings",
    "configure_logging",
    "settings",
]
