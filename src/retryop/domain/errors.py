"""Exceptions raised by the retry operator and its configuration layer."""

from typing import Optional


class ConfigurationError(Exception):
    """Configuration validation error.

    Raised by ``OperationBuilder.build()`` when a required field is missing or
    an error kind cannot be used, and by ``ConfigManager`` when a config file
    fails validation. Never raised from ``RetryOperator.retry()``.
    """

    pass


class RetryFailure(Exception):
    """Terminal failure of a retry sequence.

    Always wraps the last underlying error. The wrapped exception is available
    both as ``cause`` and through the standard ``__cause__`` chain.

    Attributes:
        cause: The exception raised by the last attempt
        attempts: Number of attempts made before giving up
    """

    def __init__(
        self,
        cause: Optional[BaseException],
        attempts: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.cause = cause
        self.attempts = attempts
        if message is None:
            if attempts is None:
                message = f"Retry failed: {cause!r}"
            else:
                message = f"Retry failed after {attempts} attempt(s): {cause!r}"
        super().__init__(message)


class RetryCancelled(RetryFailure):
    """Retry sequence stopped because its cancellation event was set."""

    def __init__(self, cause: Optional[BaseException], attempts: Optional[int] = None):
        super().__init__(cause, attempts, message=f"Retry cancelled after {attempts} attempt(s)")
