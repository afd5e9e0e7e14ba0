"""Retry models - frozen operator configuration and per-call attempt state"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Generic, Optional, Type, TypeVar

from retryop.domain.error_kinds import error_kind_of
from retryop.domain.models.time_unit import TimeUnit

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig(Generic[T]):
    """Immutable configuration of a retry operator.

    Built once by ``OperationBuilder`` and never modified afterwards, so a
    single operator can be shared between threads.
    """

    operation: Callable[[], T]
    max_attempts: int = 1
    delay: float = 0  # Expressed in time_unit
    time_unit: Optional[TimeUnit] = None
    retry_predicate: Optional[Callable[[T], bool]] = None
    retryable_error_kinds: FrozenSet[Type[Exception]] = frozenset()  # Empty: retry on any error
    listener: Optional[Callable[[int], None]] = None
    cancel_event: Optional[threading.Event] = None
    sleep: Optional[Callable[[float], None]] = None

    def __post_init__(self):
        """Validate config data"""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")

    @property
    def delay_seconds(self) -> float:
        """Delay between attempts in seconds (0 when value or unit is unset)"""
        if not self.delay or self.time_unit is None:
            return 0.0
        return self.time_unit.to_seconds(self.delay)

    def is_retryable_error(self, error: BaseException) -> bool:
        """Check if an error raised by the operation may be retried"""
        if not isinstance(error, Exception):
            return False
        if not self.retryable_error_kinds:
            return True
        return error_kind_of(error) in self.retryable_error_kinds


@dataclass
class AttemptState:
    """State of a single ``retry()`` invocation"""

    attempt_index: int = 0  # 0-based index of the current attempt
    last_result: Any = None
    last_error: Optional[Exception] = field(default=None)

    @property
    def attempts_made(self) -> int:
        return self.attempt_index + 1
