"""
Utilities Module
================

Common utilities shared across the package:
- logger: Context-aware console logging with levels
- config: Centralized, environment-driven configuration
"""

from ragent.utils.logger import Logger, set_level
from ragent.utils.config import get_config, Config

__all__ = ["Logger", "set_level", "get_config", "Config"]
