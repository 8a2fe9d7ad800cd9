# =============================================================================
# core/retry.py - Fixed-delay retry for directory calls
# =============================================================================

import logging
import time
from typing import Any, Callable, Optional, Set

from core.errors import DirectoryError
from core.models import RunStats


# Closed list of provider messages that indicate throttling or a busy server.
# Anything not listed here is fatal on first occurrence.
TRANSIENT_ERROR_SIGNATURES = (
    'busy',
    'unavailable',
    'throttl',
    'too many requests',
    'timelimitexceeded',
    'adminlimitexceeded',
    'try again later',
    'micro delay applied',
)

INJECTED_FAULT_MESSAGE = 'Server Busy (injected fault)'


def is_transient_error(message: str) -> bool:
    """Check whether an error message matches a known throttling signature"""
    lowered = (message or '').lower()
    return any(signature in lowered for signature in TRANSIENT_ERROR_SIGNATURES)


class RetryPolicy:
    """Invoke directory operations with a fixed retry budget and delay"""

    def __init__(self, max_attempts: int = 5, delay_seconds: float = 10,
                 inject_faults: bool = False, stats: Optional[RunStats] = None,
                 sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.inject_faults = inject_faults
        self.stats = stats
        self._sleep = sleep
        self._faulted_operations: Set[str] = set()
        self.logger = logging.getLogger(self.__class__.__name__)

    def call(self, operation_name: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run func, retrying transient failures.

        Args:
            operation_name: Name of the remote call type, used in logs and
                for fault injection
            func: Operation to invoke

        Returns:
            Whatever func returns

        Raises:
            DirectoryError: permanent failure or exhausted retry budget
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                self._maybe_inject_fault(operation_name)
                return func(*args, **kwargs)
            except Exception as e:
                message = e.message if isinstance(e, DirectoryError) else str(e)

                if not is_transient_error(message):
                    if isinstance(e, DirectoryError) and not e.transient:
                        raise
                    raise DirectoryError(message, transient=False) from e

                if attempt == self.max_attempts:
                    self.logger.error(
                        f"{operation_name} still throttled after {attempt} attempts: {message}"
                    )
                    raise DirectoryError(
                        f"{operation_name} exhausted {self.max_attempts} attempts: {message}",
                        transient=False
                    ) from e

                self.logger.warning(
                    f"{operation_name} throttled (attempt {attempt}/{self.max_attempts}); "
                    f"retrying in {self.delay_seconds}s: {message}"
                )
                if self.stats is not None:
                    self.stats.throttling_retries += 1
                self._sleep(self.delay_seconds)

    def _maybe_inject_fault(self, operation_name: str) -> None:
        """Raise one synthetic transient error per operation type when enabled"""
        if not self.inject_faults or operation_name in self._faulted_operations:
            return
        self._faulted_operations.add(operation_name)
        self.logger.debug(f"Injecting synthetic fault into {operation_name}")
        raise DirectoryError(INJECTED_FAULT_MESSAGE, transient=True)
