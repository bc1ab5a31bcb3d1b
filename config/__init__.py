"""Configuration module for HN-Sort-Validator.

Centralized configuration management using pydantic-settings, loading and
validating every setting from environment variables.
"""

from config.settings import GlobalConfig, get_config

__all__ = ["GlobalConfig", "get_config"]
