"""Configuration management: clone modes, config models, and loading.

Usage:
    >>> from appwrite_clone.config import load_clone_config, CloneConfig, CloneMode
"""

from appwrite_clone.config.loader import ConfigurationError, load_clone_config
from appwrite_clone.config.models import CloneConfig, CloneMode, PollSettings

__all__ = [
    "load_clone_config",
    "ConfigurationError",
    "CloneConfig",
    "CloneMode",
    "PollSettings",
]
