"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from retryop.domain.config.http import HttpSettings
from retryop.domain.config.retry import RetrySettings


class AppConfig(BaseModel):
    """Main application configuration.

    Root configuration model aggregating all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        retry: Retry policy configuration
        http: HTTP request configuration
    """

    retry: RetrySettings = Field(default_factory=RetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "retry": {
                    "max_attempts": 3,
                    "delay": 250,
                    "unit": "milliseconds",
                    "retry_on": ["TimeoutError", "ConnectionError"],
                },
                "http": {
                    "timeout": 10.0,
                    "retry_statuses": [429, 500, 502, 503, 504],
                    "headers": {},
                },
            }
        },
    )
