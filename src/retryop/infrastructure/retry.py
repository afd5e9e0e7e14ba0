"""Retry operator built on tenacity.

``RetryOperator`` repeatedly invokes an operation until its result is accepted,
the attempt budget is spent, or a non-retryable error occurs. Operators are
assembled with ``OperationBuilder`` and are immutable once built.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Callable, Generic, Optional, Tuple, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    nap,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from retryop.domain.config.retry import RetrySettings
from retryop.domain.error_kinds import ErrorKind, resolve_error_kinds
from retryop.domain.errors import ConfigurationError, RetryCancelled, RetryFailure
from retryop.domain.models.retry import AttemptState, RetryConfig
from retryop.domain.models.time_unit import TimeUnit

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Longest uninterrupted slice of an injected sleep while a cancel event is set
CANCEL_POLL_INTERVAL = 0.05


def _default_sleep(seconds: float) -> None:
    nap.sleep(seconds)


def _sleep_until_cancelled(
    sleep: Callable[[float], None], event: threading.Event
) -> Callable[[float], None]:
    """Wrap an injected sleep so a set cancel event cuts the delay short.

    The delay is slept in slices of at most ``CANCEL_POLL_INTERVAL`` seconds,
    checking the event between slices.
    """

    def _sleep(seconds: float) -> None:
        remaining = seconds
        while remaining > 0 and not event.is_set():
            chunk = min(CANCEL_POLL_INTERVAL, remaining)
            sleep(chunk)
            remaining -= chunk

    return _sleep


class RetryOperator(Generic[T]):
    """Runs an operation with bounded, observable retries.

    The operator holds only its frozen ``RetryConfig``. Every ``retry()`` call
    owns a fresh ``AttemptState`` and ``tenacity.Retrying``, so one operator can
    be invoked repeatedly and from several threads at once.
    """

    def __init__(self, config: RetryConfig[T]):
        self._config = config

    @staticmethod
    def new_builder() -> OperationBuilder[T]:
        """Start assembling a new operator"""
        return OperationBuilder()

    @property
    def config(self) -> RetryConfig[T]:
        return self._config

    def call(self, operation: Callable[[], T]) -> T:
        """Run a different operation under this operator's policy."""
        return RetryOperator(dataclasses.replace(self._config, operation=operation)).retry()

    def retry(self) -> T:
        """Evaluate the operation, retrying as configured.

        Tries at least once and at most ``max_attempts`` times. A successful
        result is returned as soon as no predicate is set or the predicate
        rejects a retry. If the predicate keeps asking for retries until the
        budget is spent, the last result is returned. Errors are retried when
        the retryable set is empty or contains the error's exact class.

        Returns:
            The accepted (or last) result of the operation

        Raises:
            RetryFailure: Wrapping the error of the last attempt, when retries
                are exhausted by errors or a non-retryable error occurs
            RetryCancelled: If the cancellation event was set
        """
        config = self._config
        state = AttemptState()

        def _attempt() -> T:
            try:
                result = config.operation()
            except Exception as e:
                state.last_error = e
                raise
            state.last_result = result
            return result

        def _before(retry_state: RetryCallState) -> None:
            state.attempt_index = retry_state.attempt_number - 1
            if config.cancel_event is not None and config.cancel_event.is_set():
                logger.info(f"Retry cancelled before attempt {state.attempt_index + 1}")
                raise RetryCancelled(state.last_error, attempts=state.attempt_index) from state.last_error
            if config.listener is not None:
                config.listener(state.attempt_index)

        retrying = Retrying(
            stop=stop_after_attempt(config.max_attempts),
            wait=wait_fixed(config.delay_seconds),
            retry=self._retry_condition(),
            before=_before,
            before_sleep=self._log_before_sleep,
            sleep=self._sleep_function(),
            retry_error_callback=_last_outcome,
        )

        try:
            return retrying(_attempt)
        except RetryFailure:
            raise
        except Exception as e:
            if e is not state.last_error:
                # Raised by the listener or the predicate, not by the operation
                raise
            if config.is_retryable_error(e):
                logger.error(
                    f"Operation failed after {state.attempts_made} attempt(s), giving up: {e}"
                )
            else:
                logger.error(f"Operation raised non-retryable {type(e).__name__}: {e}")
            raise RetryFailure(e, attempts=state.attempts_made) from e

    def _retry_condition(self):
        condition = retry_if_exception(self._config.is_retryable_error)
        if self._config.retry_predicate is not None:
            condition = condition | retry_if_result(self._config.retry_predicate)
        return condition

    def _sleep_function(self) -> Callable[[float], None]:
        config = self._config
        if config.sleep is None:
            if config.cancel_event is not None:
                sleep = nap.sleep_using_event(config.cancel_event)
            else:
                sleep = _default_sleep
        elif config.cancel_event is not None:
            sleep = _sleep_until_cancelled(config.sleep, config.cancel_event)
        else:
            sleep = config.sleep

        def _sleep(seconds: float) -> None:
            if seconds > 0:
                sleep(seconds)

        return _sleep

    def _log_before_sleep(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None:
            return
        attempt = retry_state.attempt_number
        max_attempts = self._config.max_attempts
        if outcome.failed:
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {outcome.exception()!r}. Retrying..."
            )
        else:
            logger.debug(f"Attempt {attempt}/{max_attempts} result rejected by predicate. Retrying...")


def _last_outcome(retry_state: RetryCallState):
    # Attempts exhausted: return the last result or re-raise the last error
    return retry_state.outcome.result()


class OperationBuilder(Generic[T]):
    """Fluent builder for ``RetryOperator``.

    Each setter overwrites the previous value of its field and returns the
    builder. ``build()`` validates and freezes the configuration.
    """

    def __init__(self):
        self._operation: Optional[Callable[[], T]] = None
        self._max_attempts: int = 0
        self._delay: float = 0
        self._time_unit: Optional[TimeUnit] = None
        self._retry_predicate: Optional[Callable[[T], bool]] = None
        self._retry_on: Tuple[ErrorKind, ...] = ()
        self._listener: Optional[Callable[[int], None]] = None
        self._cancel_event: Optional[threading.Event] = None
        self._sleep: Optional[Callable[[float], None]] = None

    def operation(self, operation: Callable[[], T]) -> OperationBuilder[T]:
        self._operation = operation
        return self

    def max_attempts(self, max_attempts: int) -> OperationBuilder[T]:
        self._max_attempts = max_attempts
        return self

    def delay(self, delay: float, unit: Optional[TimeUnit]) -> OperationBuilder[T]:
        """Set the fixed delay between attempts.

        No sleep happens if ``delay`` is zero or ``unit`` is None.
        """
        self._delay = delay
        self._time_unit = unit
        return self

    def retry_predicate(self, predicate: Callable[[T], bool]) -> OperationBuilder[T]:
        """Set a predicate that requests another attempt for a successful result."""
        self._retry_predicate = predicate
        return self

    def on_attempt(self, listener: Callable[[int], None]) -> OperationBuilder[T]:
        """Set a listener called with the 0-based attempt index before each attempt."""
        self._listener = listener
        return self

    def retry_on(self, *kinds: ErrorKind) -> OperationBuilder[T]:
        """Restrict retries to the given exception classes.

        Calling it without arguments (or never) retries on any error.
        """
        self._retry_on = kinds
        return self

    def cancel_on(self, event: threading.Event) -> OperationBuilder[T]:
        """Stop the sequence with ``RetryCancelled`` once ``event`` is set."""
        self._cancel_event = event
        return self

    def sleep_with(self, sleep: Callable[[float], None]) -> OperationBuilder[T]:
        """Replace the function used to wait between attempts (takes seconds).

        With ``cancel_on`` also set, the delay is slept in short slices so the
        event still cuts it short.
        """
        self._sleep = sleep
        return self

    def from_settings(self, settings: RetrySettings) -> OperationBuilder[T]:
        """Copy attempts, delay and retryable error kinds from a config section."""
        return (
            self.max_attempts(settings.max_attempts)
            .delay(settings.delay, TimeUnit(settings.unit))
            .retry_on(*settings.retry_on)
        )

    def build(self) -> RetryOperator[T]:
        """Validate and freeze the configuration.

        Raises:
            ConfigurationError: If no operation was set or an error kind is invalid
        """
        if self._operation is None:
            raise ConfigurationError("operation is required")
        if not callable(self._operation):
            raise ConfigurationError(f"operation must be callable, got {type(self._operation).__name__}")
        if self._delay is None or self._delay < 0:
            raise ConfigurationError("delay must be non-negative")

        max_attempts = self._max_attempts
        if max_attempts < 1:
            # Always execute at least once
            max_attempts = 1

        config = RetryConfig(
            operation=self._operation,
            max_attempts=max_attempts,
            delay=self._delay,
            time_unit=self._time_unit,
            retry_predicate=self._retry_predicate,
            retryable_error_kinds=resolve_error_kinds(self._retry_on),
            listener=self._listener,
            cancel_event=self._cancel_event,
            sleep=self._sleep,
        )
        logger.debug(
            f"Built retry operator: max_attempts={config.max_attempts}, "
            f"delay={config.delay_seconds}s, retry_on={sorted(k.__name__ for k in config.retryable_error_kinds)}"
        )
        return RetryOperator(config)


def new_builder() -> OperationBuilder:
    """Start assembling a new ``RetryOperator``."""
    return OperationBuilder()
