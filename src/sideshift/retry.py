import asyncio
import math
import random
from typing import Callable, Union

from .errors import HttpStatusError, TransportError
from .types import RetryConfig

RATE_LIMIT_STATUS = 429
SERVER_ERROR_MIN = 500
CLIENT_ERROR_MIN = 400
# jitter is drawn from [0, base_delay_ms * JITTER_RATIO)
JITTER_RATIO = 0.2


def is_retryable(error: Union[BaseException, None]) -> bool:
    """Decide whether a failed attempt is worth retrying.

    Connectivity problems and timeouts are retried, as are server errors and
    rate limiting. Other client errors, validation and decode failures are not.
    Unwrapped network exceptions (builtin, requests or httpx) count as
    connectivity problems.
    """
    import httpx  # noqa: PLC0415
    import requests  # noqa: PLC0415

    if error is None:
        return False
    if isinstance(error, TransportError):
        return True
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(error, (requests.Timeout, requests.ConnectionError, httpx.TransportError)):
        return True
    if isinstance(error, HttpStatusError) and error.status is not None:
        if error.status >= SERVER_ERROR_MIN:
            return True
        if error.status >= CLIENT_ERROR_MIN:
            return error.status == RATE_LIMIT_STATUS
    return False


def backoff_delay(
    attempt: int, config: RetryConfig, rand: Callable[[], float] = random.random
) -> int:
    """Milliseconds to wait before retrying after the given 0-based attempt.

    Jitter is added after clamping to the cap, so the result can slightly exceed
    cap_delay_ms.
    """
    if attempt >= config.max_retries:
        return config.cap_delay_ms
    base = min(config.backoff_multiplier**attempt * config.base_delay_ms, config.cap_delay_ms)
    jitter = math.floor(rand() * config.base_delay_ms * JITTER_RATIO)
    return int(base + jitter)
