"""retryop - bounded, observable retries for flaky operations"""

from retryop.domain.errors import ConfigurationError, RetryCancelled, RetryFailure
from retryop.domain.models.retry import AttemptState, RetryConfig
from retryop.domain.models.time_unit import TimeUnit
from retryop.infrastructure.retry import OperationBuilder, RetryOperator, new_builder

__all__ = [
    "AttemptState",
    "ConfigurationError",
    "OperationBuilder",
    "RetryCancelled",
    "RetryConfig",
    "RetryFailure",
    "RetryOperator",
    "TimeUnit",
    "new_builder",
]
