"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, HOME_ENV_VAR, default_home
from .models import DownloadSettings

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DownloadSettings",
    "HOME_ENV_VAR",
    "default_home",
]
