import asyncio

import pytest

from infrastructure.external.storage.exceptions import (
    BackendErrorKind,
    FatalBackendError,
    TransientBackendError,
)
from infrastructure.external.storage.retry import (
    is_transient_chunk,
    is_transient_default,
    retry_async,
)


class FakeSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _flaky(*errors: BaseException, result="ok"):
    calls = {"n": 0}

    async def operation():
        calls["n"] += 1
        if calls["n"] <= len(errors):
            raise errors[calls["n"] - 1]
        return result

    return operation, calls


@pytest.mark.asyncio
async def test_delays_double_until_success():
    sleep = FakeSleep()
    network = TransientBackendError("boom", kind=BackendErrorKind.NETWORK)
    operation, calls = _flaky(network, network, network)

    result = await retry_async(operation, max_retries=3, initial_delay=0.2, sleep=sleep)

    assert result == "ok"
    assert calls["n"] == 4
    assert sleep.delays == pytest.approx([0.2, 0.4, 0.8])


@pytest.mark.asyncio
async def test_delay_is_capped_at_max_delay():
    sleep = FakeSleep()
    network = TransientBackendError("boom", kind=BackendErrorKind.NETWORK)
    operation, _ = _flaky(*([network] * 4))

    await retry_async(operation, max_retries=4, initial_delay=1.0, max_delay=3.0, sleep=sleep)

    assert sleep.delays == pytest.approx([1.0, 2.0, 3.0, 3.0])


@pytest.mark.asyncio
async def test_last_error_propagates_when_retries_exhausted():
    sleep = FakeSleep()
    errors = [
        TransientBackendError(f"attempt {i}", kind=BackendErrorKind.SERVER_ERROR, status_code=503)
        for i in range(3)
    ]
    operation, calls = _flaky(*errors)

    with pytest.raises(TransientBackendError) as exc_info:
        await retry_async(operation, max_retries=2, retry_condition=is_transient_default, sleep=sleep)

    assert exc_info.value is errors[-1]
    assert calls["n"] == 3
    assert len(sleep.delays) == 2


@pytest.mark.asyncio
async def test_rejected_error_is_not_retried():
    sleep = FakeSleep()
    error = FatalBackendError("nope", kind=BackendErrorKind.CLIENT_ERROR, status_code=404)
    operation, calls = _flaky(error)

    with pytest.raises(FatalBackendError):
        await retry_async(operation, retry_condition=is_transient_default, sleep=sleep)

    assert calls["n"] == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_cancellation_is_never_retried():
    sleep = FakeSleep()
    operation, calls = _flaky(asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await retry_async(operation, sleep=sleep)

    assert calls["n"] == 1


def test_default_predicate():
    assert is_transient_default(TransientBackendError("x", kind=BackendErrorKind.NETWORK))
    assert is_transient_default(TransientBackendError("x", kind=BackendErrorKind.SERVER_ERROR, status_code=507))
    assert not is_transient_default(TransientBackendError("x", kind=BackendErrorKind.RATE_LIMITED, status_code=429))
    assert not is_transient_default(ValueError("x"))


def test_chunk_predicate():
    assert is_transient_chunk(TransientBackendError("x", kind=BackendErrorKind.RATE_LIMITED, status_code=429))
    assert is_transient_chunk(TransientBackendError("x", kind=BackendErrorKind.SERVER_ERROR, status_code=504))
    assert not is_transient_chunk(TransientBackendError("x", kind=BackendErrorKind.SERVER_ERROR, status_code=507))
    assert not is_transient_chunk(FatalBackendError("x", kind=BackendErrorKind.CLIENT_ERROR, status_code=416))
