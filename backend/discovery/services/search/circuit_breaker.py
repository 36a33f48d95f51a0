# backend/discovery/services/search/circuit_breaker.py
"""
Circuit breaker pattern for listing store protection.

After a run of consecutive store failures the circuit opens and read paths
go straight to the fallback dataset instead of waiting on a store that is
known to be down. After the recovery timeout one trial call is let through.
"""
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ...monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""

    failure_threshold: int = 5  # Consecutive failures before opening
    success_threshold: int = 1  # Successes to close from half-open
    timeout_seconds: float = 30.0  # Time before trying half-open


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for protecting listing store calls.

    Usage:
        breaker = CircuitBreaker(name="listing_store")

        try:
            result = await breaker.call(store.fetch_listings, spec)
        except CircuitOpenError:
            # Use fallback
    """

    name: str
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    # State
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _success_count: int = field(default=0, init=False)
    _last_state_change: Optional[float] = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _transition(self, new_state: CircuitState) -> None:
        """Caller must hold the lock."""
        old_state = self._state
        self._state = new_state
        self._last_state_change = self.clock()
        prometheus_metrics.set_store_circuit_state(new_state.value)
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"Circuit {self.name}: {old_state.name} -> {new_state.name}")

    def _should_attempt(self) -> bool:
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                elapsed = self.clock() - (self._last_state_change or 0.0)
                if elapsed >= self.config.timeout_seconds:
                    self._transition(CircuitState.HALF_OPEN)
                    return True
                return False

            return self._state == CircuitState.HALF_OPEN

    def _record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    self._failure_count = 0
                    self._success_count = 0
                    self._transition(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def _record_failure(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                # Any failure in half-open goes back to open
                self._success_count = 0
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.config.failure_threshold:
                    self._transition(CircuitState.OPEN)

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Execute a function through the circuit breaker.

        Raises:
            CircuitOpenError: If circuit is open and not ready to test
        """
        if not self._should_attempt():
            raise CircuitOpenError(f"Circuit {self.name} is OPEN")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._failure_count = 0
            self._success_count = 0
            self._transition(CircuitState.CLOSED)


class CircuitOpenError(Exception):
    """Raised when attempting to call through an open circuit."""
