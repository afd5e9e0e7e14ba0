"""Retry configuration model."""

from typing import List

from pydantic import BaseModel, Field, field_validator

from retryop.domain.error_kinds import resolve_error_kind
from retryop.domain.errors import ConfigurationError
from retryop.domain.models.time_unit import TimeUnit


class RetrySettings(BaseModel):
    """Configuration for retry logic.
    
    Attributes:
        max_attempts: Maximum number of attempts (values <= 0 mean a single attempt)
        delay: Fixed delay between attempts, expressed in ``unit``
        unit: Time unit of ``delay``
        retry_on: Names of retryable exception classes (empty: retry on any error)
    """

    max_attempts: int = Field(3, le=100)
    delay: float = Field(0.0, ge=0.0)
    unit: TimeUnit = TimeUnit.MILLISECONDS
    retry_on: List[str] = Field(default_factory=list)

    @field_validator("retry_on")
    @classmethod
    def _check_error_kinds(cls, v: List[str]) -> List[str]:
        """Fail fast on names that do not resolve to exception classes."""
        for name in v:
            try:
                resolve_error_kind(name)
            except ConfigurationError as e:
                raise ValueError(str(e)) from e
        return v
