"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, read_url_list
from .models import AppConfig, FetchConfig

__all__ = [
    "AppConfig",
    "ConfigLocator",
    "ConfigRepository",
    "FetchConfig",
    "read_url_list",
]
