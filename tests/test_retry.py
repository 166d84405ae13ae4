import httpx
import pytest
import requests

from sideshift import (
    DecodeError,
    HttpStatusError,
    RetryConfig,
    TransportError,
    ValidationError,
    backoff_delay,
    is_retryable,
)


@pytest.mark.parametrize("status", [500, 502, 503, 429])
def test_retryable_statuses(status):
    assert is_retryable(HttpStatusError(f"HTTP {status}", status=status))


@pytest.mark.parametrize("status", [400, 401, 404])
def test_client_errors_not_retried(status):
    assert not is_retryable(HttpStatusError(f"HTTP {status}", status=status))


def test_transport_and_other_failures():
    assert is_retryable(TransportError("fetch failed: connection reset"))
    assert is_retryable(TransportError("Request timeout after 10000ms"))
    assert not is_retryable(ValidationError("Error from getShift: Missing or invalid shiftId"))
    assert not is_retryable(DecodeError("Failed to decode JSON response"))
    assert not is_retryable(ValueError("plain"))
    assert not is_retryable(None)


@pytest.mark.parametrize(
    "error",
    [
        TimeoutError("timed out"),
        ConnectionError("connection reset"),
        ConnectionRefusedError(111, "Connection refused"),
        requests.ConnectionError("connection reset"),
        requests.ReadTimeout("read timed out"),
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
    ],
)
def test_unwrapped_network_errors_retried(error):
    assert is_retryable(error)


def test_unwrapped_non_network_errors_not_retried():
    assert not is_retryable(requests.HTTPError("404 Client Error"))
    assert not is_retryable(OSError("disk full"))


def test_first_delay_within_jitter_window():
    cfg = RetryConfig()
    delay = backoff_delay(0, cfg, rand=lambda: 0.5)
    assert cfg.base_delay_ms <= delay <= cfg.base_delay_ms * 1.2


def test_delay_grows_exponentially_with_varying_jitter():
    draws = iter([0, 0.1, 0.5, 0.9])
    cfg = RetryConfig()
    d1, d2, d3 = (backoff_delay(n, cfg, rand=lambda: next(draws)) for n in range(3))
    assert d2 >= d1 * cfg.backoff_multiplier
    assert d3 >= d2 * cfg.backoff_multiplier


def test_delay_grows_with_fixed_zero_jitter():
    cfg = RetryConfig(max_retries=10, base_delay_ms=100, cap_delay_ms=100000)
    delays = [backoff_delay(n, cfg, rand=lambda: 0.0) for n in range(6)]
    for prev, nxt in zip(delays, delays[1:]):
        assert nxt >= prev * cfg.backoff_multiplier


def test_cap_returned_exactly_past_budget():
    cfg = RetryConfig()
    assert backoff_delay(10, cfg) == cfg.cap_delay_ms
    assert backoff_delay(cfg.max_retries, cfg) == cfg.cap_delay_ms


def test_jitter_added_after_clamp_may_exceed_cap():
    cfg = RetryConfig()
    # 2**3 * 2000 clamps to 10000, then 0.5 * 400 jitter on top
    assert backoff_delay(3, cfg, rand=lambda: 0.5) == 10200  # noqa: PLR2004
