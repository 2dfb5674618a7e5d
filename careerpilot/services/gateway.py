"""
Gateway for calls to the generative AI provider.

Every model call passes through, in order:
  1. Circuit breaker: fail fast while the provider keeps failing
  2. Concurrency semaphore
  3. Per-attempt timeout
  4. Retry on transient errors (429, 5xx such as 503 "model overloaded",
     timeouts, dropped connections). The wait honours a Retry-After header
     when the provider sends one, else exponential backoff with jitter.

Usage:
    result = await get_gateway().execute("ai", client.chat.completions.create, model=..., messages=...)
"""
import asyncio
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, Optional

from careerpilot.config import get_settings
from careerpilot.utils.errors import AppError
from careerpilot.utils.logger import logger
from careerpilot.utils.metrics import inc, observe

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER_SECONDS = 30.0


@dataclass(frozen=True)
class ServiceConfig:
    max_concurrent: int = 10
    timeout_seconds: float = 60.0
    max_retries: int = 3
    circuit_failure_threshold: int = 5
    circuit_recovery_seconds: float = 30.0
    base_backoff_seconds: float = 1.0
    half_open_successes: int = 2


def default_config() -> Dict[str, ServiceConfig]:
    settings = get_settings()
    return {
        "ai": ServiceConfig(
            max_concurrent=settings.ai_max_concurrent,
            timeout_seconds=settings.ai_timeout_seconds,
            max_retries=settings.ai_max_retries,
        ),
    }


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(AppError):
    """The provider's circuit is open; the call was not attempted."""

    def __init__(self, service: str):
        super().__init__(
            "AI service is temporarily unavailable",
            code="SERVICE_UNAVAILABLE",
            status_code=503,
            context={"service": service},
        )
        self.service = service


class CircuitBreaker:
    def __init__(self, service: str, config: ServiceConfig):
        self.service = service
        self.config = config
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at = 0.0
        self.probe_successes = 0

    def _transition(self, state: CircuitState) -> None:
        self.state = state
        log = logger.warning if state == CircuitState.OPEN else logger.info
        log(f"circuit.{state.value}", extra={"service": self.service, "circuit_state": state.value})

    def allow_request(self) -> bool:
        if self.state == CircuitState.OPEN:
            if time.monotonic() - self.opened_at < self.config.circuit_recovery_seconds:
                return False
            self.probe_successes = 0
            self._transition(CircuitState.HALF_OPEN)
        return True

    def record_success(self) -> None:
        if self.state != CircuitState.HALF_OPEN:
            self.failure_count = 0
            return
        self.probe_successes += 1
        if self.probe_successes >= self.config.half_open_successes:
            self.failure_count = 0
            self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        self.failure_count += 1
        tripped = (
            self.state == CircuitState.HALF_OPEN
            or self.failure_count >= self.config.circuit_failure_threshold
        )
        if tripped:
            self.opened_at = time.monotonic()
            if self.state != CircuitState.OPEN:
                self._transition(CircuitState.OPEN)

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, "failures": self.failure_count}


def _status_of(exc: Exception) -> Optional[int]:
    # openai.APIStatusError exposes status_code; httpx errors carry a response
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def is_retryable(exc: Exception) -> bool:
    status = _status_of(exc)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return True
    name = type(exc).__name__.lower()
    return any(kw in name for kw in ("timeout", "connection", "ratelimit"))


def retry_after_seconds(exc: Exception) -> Optional[float]:
    """Seconds from a Retry-After header on the provider's response, if any."""
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return min(float(value), MAX_RETRY_AFTER_SECONDS) if value is not None else None
    except (TypeError, ValueError):
        return None


def backoff_seconds(config: ServiceConfig, attempt: int) -> float:
    base = config.base_backoff_seconds * (2 ** attempt)
    return base + random.uniform(0, base * 0.5)


class ServiceGateway:
    """Per-service circuit breakers and semaphores, plus the retry loop."""

    def __init__(self, config: Optional[Dict[str, ServiceConfig]] = None) -> None:
        self._config = config or default_config()
        self._circuits = {name: CircuitBreaker(name, cfg) for name, cfg in self._config.items()}
        self._semaphores = {name: asyncio.Semaphore(cfg.max_concurrent) for name, cfg in self._config.items()}

    async def execute(
        self,
        service: str,
        fn: Callable[..., Coroutine],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        cfg = self._config.get(service)
        if cfg is None:
            return await fn(*args, **kwargs)

        circuit = self._circuits[service]
        started = time.monotonic()

        for attempt in range(cfg.max_retries + 1):
            if not circuit.allow_request():
                inc(f"{service}.rejected")
                raise CircuitOpenError(service)

            try:
                async with self._semaphores[service]:
                    result = await asyncio.wait_for(fn(*args, **kwargs), timeout=cfg.timeout_seconds)
            except Exception as exc:
                circuit.record_failure()
                inc(f"{service}.error")
                if attempt >= cfg.max_retries or not is_retryable(exc):
                    logger.error(
                        "gateway.failed",
                        extra={"service": service, "attempt": attempt + 1, "error": str(exc)[:200]},
                    )
                    raise

                wait = retry_after_seconds(exc)
                if wait is None:
                    wait = backoff_seconds(cfg, attempt)
                inc(f"{service}.retry")
                logger.warning(
                    "gateway.retry",
                    extra={
                        "service": service,
                        "attempt": attempt + 1,
                        "error": str(exc)[:200],
                        "wait_seconds": round(wait, 2),
                    },
                )
                await asyncio.sleep(wait)
                continue

            circuit.record_success()
            inc(f"{service}.success")
            observe(f"{service}.duration_ms", (time.monotonic() - started) * 1000)
            return result

    def get_circuit_states(self) -> Dict[str, str]:
        return {name: cb.state.value for name, cb in self._circuits.items()}

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Circuit state and failure count per service (for /metrics)."""
        return {name: cb.to_dict() for name, cb in self._circuits.items()}


_gateway: Optional[ServiceGateway] = None


def get_gateway() -> ServiceGateway:
    global _gateway
    if _gateway is None:
        _gateway = ServiceGateway()
    return _gateway


def reset_gateway() -> None:
    """Forget circuit state (tests and config reloads)."""
    global _gateway
    _gateway = None
