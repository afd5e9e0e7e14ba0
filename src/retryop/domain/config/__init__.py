"""Configuration models with Pydantic validation."""

from retryop.domain.config.app import AppConfig
from retryop.domain.config.http import HttpSettings
from retryop.domain.config.retry import RetrySettings

__all__ = [
    "AppConfig",
    "HttpSettings",
    "RetrySettings",
]
