from types import SimpleNamespace

import pytest
from unittest.mock import AsyncMock

from careerpilot.services.gateway import (
    CircuitOpenError,
    CircuitState,
    ServiceConfig,
    ServiceGateway,
    is_retryable,
    retry_after_seconds,
)
from careerpilot.utils import metrics
from careerpilot.utils.errors import AppError


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


def _gateway(**overrides):
    cfg = ServiceConfig(
        max_concurrent=2,
        timeout_seconds=1.0,
        max_retries=overrides.pop("max_retries", 2),
        circuit_failure_threshold=overrides.pop("circuit_failure_threshold", 5),
        circuit_recovery_seconds=overrides.pop("circuit_recovery_seconds", 30.0),
        base_backoff_seconds=0.0,
    )
    return ServiceGateway({"ai": cfg})


@pytest.mark.parametrize("status", [429, 500, 503])
def test_transient_statuses_are_retryable(status):
    assert is_retryable(StatusError(status))


def test_client_errors_are_not_retryable():
    assert not is_retryable(StatusError(400))
    assert not is_retryable(ValueError("bad json"))


async def test_success_passes_result_through():
    gw = _gateway()
    fn = AsyncMock(return_value="ok")
    assert await gw.execute("ai", fn, "prompt", temperature=0.2) == "ok"
    fn.assert_awaited_once_with("prompt", temperature=0.2)


async def test_retries_overloaded_provider():
    gw = _gateway()
    fn = AsyncMock(side_effect=[StatusError(503), StatusError(429), "done"])
    assert await gw.execute("ai", fn) == "done"
    assert fn.await_count == 3


async def test_non_retryable_error_raises_immediately():
    gw = _gateway()
    fn = AsyncMock(side_effect=ValueError("boom"))
    with pytest.raises(ValueError):
        await gw.execute("ai", fn)
    assert fn.await_count == 1


async def test_circuit_opens_after_threshold():
    gw = _gateway(max_retries=0, circuit_failure_threshold=2)
    fn = AsyncMock(side_effect=StatusError(500))

    for _ in range(2):
        with pytest.raises(StatusError):
            await gw.execute("ai", fn)

    assert gw.get_circuit_states() == {"ai": CircuitState.OPEN.value}
    with pytest.raises(CircuitOpenError):
        await gw.execute("ai", fn)
    assert fn.await_count == 2


async def test_circuit_recovers_through_half_open():
    gw = _gateway(max_retries=0, circuit_failure_threshold=1, circuit_recovery_seconds=0.0)
    with pytest.raises(StatusError):
        await gw.execute("ai", AsyncMock(side_effect=StatusError(500)))

    ok = AsyncMock(return_value="ok")
    await gw.execute("ai", ok)
    assert gw.get_circuit_states()["ai"] == CircuitState.HALF_OPEN.value
    await gw.execute("ai", ok)
    assert gw.get_circuit_states()["ai"] == CircuitState.CLOSED.value


async def test_unknown_service_is_passed_through():
    gw = _gateway()
    assert await gw.execute("other", AsyncMock(return_value=1)) == 1


class ProviderError(StatusError):
    def __init__(self, status_code, retry_after):
        super().__init__(status_code)
        self.response = SimpleNamespace(status_code=status_code, headers={"retry-after": retry_after})


def test_retry_after_header_is_capped():
    assert retry_after_seconds(ProviderError(429, "2")) == 2.0
    assert retry_after_seconds(ProviderError(429, "600")) == 30.0
    assert retry_after_seconds(ProviderError(429, "soon")) is None
    assert retry_after_seconds(ValueError("no response")) is None


async def test_retry_waits_for_retry_after(monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr("careerpilot.services.gateway.asyncio.sleep", fake_sleep)
    gw = _gateway()
    fn = AsyncMock(side_effect=[ProviderError(429, "3"), "ok"])

    assert await gw.execute("ai", fn) == "ok"
    assert waits == [3.0]
    assert metrics.get_counter("ai.retry") == 1


async def test_open_circuit_is_a_503_app_error():
    gw = _gateway(max_retries=0, circuit_failure_threshold=1)
    with pytest.raises(StatusError):
        await gw.execute("ai", AsyncMock(side_effect=StatusError(502)))

    with pytest.raises(AppError) as exc_info:
        await gw.execute("ai", AsyncMock(return_value="never"))
    assert exc_info.value.status_code == 503
    assert exc_info.value.code == "SERVICE_UNAVAILABLE"
    assert gw.describe() == {"ai": {"state": "open", "failures": 1}}
