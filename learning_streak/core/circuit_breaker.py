import asyncio
import time
from enum import Enum
from typing import Dict, Any, Optional, Callable, Awaitable
from dataclasses import dataclass

from learning_streak.core.config import settings
from learning_streak.utils.exceptions import CircuitBreakerError
from learning_streak.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    recovery_timeout: float = 60
    success_threshold: int = 3
    timeout: float = 10.0

    @classmethod
    def from_settings(cls) -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
            success_threshold=settings.CIRCUIT_BREAKER_SUCCESS_THRESHOLD,
            timeout=settings.REMOTE_STORE_TIMEOUT_SECONDS,
        )


class CircuitBreaker:
    """Guards calls to a remote store.

    Each call is bounded by ``config.timeout``. After ``failure_threshold``
    consecutive failures the circuit opens and calls fail fast with
    ``CircuitBreakerError`` until ``recovery_timeout`` seconds have passed;
    the next call is then let through as a trial (HALF_OPEN) and
    ``success_threshold`` successes close the circuit again.
    """

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.trial_successes = 0
        self.opened_at: Optional[float] = None

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.state == CircuitState.OPEN:
            if time.monotonic() - self.opened_at < self.config.recovery_timeout:
                raise CircuitBreakerError(self.name)
            self.state = CircuitState.HALF_OPEN
            self.trial_successes = 0
            logger.info(f"Circuit {self.name} half-open, trying the store again")

        try:
            result = await asyncio.wait_for(func(*args, **kwargs), timeout=self.config.timeout)
        except asyncio.TimeoutError:
            self._record_failure(f"no answer within {self.config.timeout}s")
            raise CircuitBreakerError(self.name, reason="timed out")
        except Exception as e:
            self._record_failure(str(e))
            raise

        self._record_success()
        return result

    def _record_success(self):
        if self.state == CircuitState.HALF_OPEN:
            self.trial_successes += 1
            if self.trial_successes < self.config.success_threshold:
                return
            logger.info(f"Circuit {self.name} closed, store recovered")

        self.state = CircuitState.CLOSED
        self.failures = 0

    def _record_failure(self, reason: str):
        self.failures += 1
        logger.warning(f"Circuit {self.name} call failed ({self.failures} in a row): {reason}")

        if self.state == CircuitState.HALF_OPEN or self.failures >= self.config.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_at = time.monotonic()
            logger.error(f"Circuit {self.name} open for {self.config.recovery_timeout}s")


_breakers: Dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str) -> CircuitBreaker:
    """Shared breaker for ``name``, configured from settings on first use"""
    if name not in _breakers:
        _breakers[name] = CircuitBreaker(name, CircuitBreakerConfig.from_settings())
    return _breakers[name]
