"""
Third-party intelligence sources for netScope.

Geolocation/ASN (ip-api.com), abuse reputation (AbuseIPDB) and open
ports/vulnerabilities (Shodan InternetDB). Shared utilities:
- CircuitBreaker: fails fast while an external API keeps failing
- RateLimiter: sliding-window limiter for free-tier request quotas
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from netScope.logging_config import get_logger

logger = get_logger("intel")


class CircuitState(Enum):
    CLOSED = "closed"      # Normal operation, requests pass through
    OPEN = "open"          # Circuit tripped, requests fail fast
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for external API resilience.

    After failure_threshold consecutive failures the circuit opens and
    callers skip the service. After recovery_time seconds it moves to
    half-open and lets half_open_max_calls test requests through.

    Usage:
        breaker = get_circuit_breaker("ip_api", failure_threshold=5)

        if breaker.is_open():
            return placeholder

        try:
            result = await call()
            breaker.record_success()
        except TransportError:
            breaker.record_failure()
    """
    name: str
    failure_threshold: int = 5
    recovery_time: float = 60.0
    half_open_max_calls: int = 1

    _failures: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0.0, init=False)
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _half_open_since: float = field(default=0.0, init=False)

    def is_open(self) -> bool:
        """Check if circuit is open (requests should fail fast)."""
        if self._state == CircuitState.CLOSED:
            return False

        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time >= self.recovery_time:
                self._transition_to_half_open()
                self._half_open_calls += 1
                return False
            return True

        # HALF_OPEN: allow limited test calls
        if self._half_open_calls >= self.half_open_max_calls:
            if time.time() - self._half_open_since < self.recovery_time:
                return True
            # Test calls never reported an outcome; hand out fresh slots
            self._half_open_calls = 0
            self._half_open_since = time.time()
        self._half_open_calls += 1
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._transition_to_closed()
            logger.info(
                f"Circuit breaker '{self.name}' closed after successful recovery",
                extra={"circuit": self.name, "state": "closed", "outcome": "recovered"},
            )
        elif self._state == CircuitState.CLOSED:
            self._failures = 0

    def record_failure(self) -> None:
        self._failures += 1
        self._last_failure_time = time.time()

        if self._state == CircuitState.HALF_OPEN:
            self._transition_to_open()
            logger.warning(
                f"Circuit breaker '{self.name}' re-opened after failed recovery attempt",
                extra={"circuit": self.name, "state": "open", "outcome": "recovery_failed"},
            )
        elif self._state == CircuitState.CLOSED and self._failures >= self.failure_threshold:
            self._transition_to_open()
            logger.warning(
                f"Circuit breaker '{self.name}' opened after {self._failures} failures",
                extra={"circuit": self.name, "state": "open", "outcome": "tripped"},
            )

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        self._transition_to_closed()
        self._last_failure_time = 0.0

    def _transition_to_open(self) -> None:
        self._state = CircuitState.OPEN
        self._half_open_calls = 0

    def _transition_to_half_open(self) -> None:
        self._state = CircuitState.HALF_OPEN
        self._half_open_calls = 0
        self._half_open_since = time.time()
        logger.info(
            f"Circuit breaker '{self.name}' entering half-open state",
            extra={"circuit": self.name, "state": "half_open"},
        )

    def _transition_to_closed(self) -> None:
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._half_open_calls = 0

    @property
    def state(self) -> CircuitState:
        return self._state

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self._state.value,
            "failures": self._failures,
            "failure_threshold": self.failure_threshold,
            "recovery_time": self.recovery_time,
            "time_since_last_failure": time.time() - self._last_failure_time if self._last_failure_time else None,
        }


@dataclass
class RateLimiter:
    """
    Sliding-window rate limiter: at most max_requests per window_seconds.

    Usage:
        limiter = get_rate_limiter("ip_api", max_requests=45, window_seconds=60)
        if not limiter.try_acquire():
            return placeholder
    """
    max_requests: int
    window_seconds: float = 60.0

    _tokens: list = field(default_factory=list, init=False)

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        self._tokens = [t for t in self._tokens if t > cutoff]

    def try_acquire(self) -> bool:
        """Return True and record a request if one is allowed now."""
        now = time.time()
        self._prune(now)
        if len(self._tokens) >= self.max_requests:
            return False
        self._tokens.append(now)
        return True

    def time_until_available(self) -> float:
        """Seconds until a request will be allowed; 0 if one is allowed now."""
        now = time.time()
        self._prune(now)
        if len(self._tokens) < self.max_requests:
            return 0.0
        return max(0.0, min(self._tokens) + self.window_seconds - now)

    def tokens_available(self) -> int:
        self._prune(time.time())
        return max(0, self.max_requests - len(self._tokens))


_circuit_breakers: Dict[str, CircuitBreaker] = {}
_rate_limiters: Dict[str, RateLimiter] = {}


def get_circuit_breaker(
    name: str,
    failure_threshold: int = 5,
    recovery_time: float = 60.0,
) -> CircuitBreaker:
    """Get or create the application-wide circuit breaker for a service."""
    if name not in _circuit_breakers:
        _circuit_breakers[name] = CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold,
            recovery_time=recovery_time,
        )
    return _circuit_breakers[name]


def get_rate_limiter(
    name: str,
    max_requests: int,
    window_seconds: float = 60.0,
) -> RateLimiter:
    """
    Get or create the application-wide rate limiter for a service.

    An existing limiter keeps its request history but takes the quota and
    window passed here, so a changed config applies on the next call.
    """
    limiter = _rate_limiters.get(name)
    if limiter is None:
        limiter = _rate_limiters[name] = RateLimiter(
            max_requests=max_requests,
            window_seconds=window_seconds,
        )
    elif (limiter.max_requests, limiter.window_seconds) != (max_requests, window_seconds):
        logger.info(
            f"Rate limiter '{name}' reconfigured to {max_requests} requests per {window_seconds:.0f}s",
            extra={"service": name, "state": "reconfigured"},
        )
        limiter.max_requests = max_requests
        limiter.window_seconds = window_seconds
    return limiter


def circuit_stats() -> List[dict]:
    return [breaker.get_stats() for breaker in _circuit_breakers.values()]
