from dataclasses import dataclass, field
from typing import Any

from .errors import ValidationError

BASE_URL = "https://sideshift.ai/api/v2"
DEFAULT_COMMISSION_RATE = "0.5"
# Fixed per-attempt deadline; not configurable.
REQUEST_TIMEOUT_MS = 10000


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 5
    base_delay_ms: int = 2000
    backoff_multiplier: float = 2.0
    cap_delay_ms: int = 10000

    def __post_init__(self):
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ValidationError(f"max_retries must be an integer. Provided: {self.max_retries}")
        if self.max_retries < 0:
            raise ValidationError(f"max_retries must be >= 0. Provided: {self.max_retries}")
        for name in ("base_delay_ms", "backoff_multiplier", "cap_delay_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number. Provided: {value!r}")
        if self.base_delay_ms <= 0:
            raise ValidationError(f"base_delay_ms must be > 0. Provided: {self.base_delay_ms}")
        if self.backoff_multiplier <= 1:
            raise ValidationError(
                f"backoff_multiplier must be > 1. Provided: {self.backoff_multiplier}"
            )
        if self.cap_delay_ms <= 0:
            raise ValidationError(f"cap_delay_ms must be > 0. Provided: {self.cap_delay_ms}")


@dataclass(frozen=True)
class ClientConfig:
    secret: str = field(repr=False)
    account_id: str
    commission_rate: str = DEFAULT_COMMISSION_RATE
    verbose: bool = False
    retry: RetryConfig = field(default_factory=RetryConfig)
    request_timeout_ms: int = field(default=REQUEST_TIMEOUT_MS, init=False)
    base_url: str = BASE_URL

    def __post_init__(self):
        if not isinstance(self.secret, str) or not self.secret.strip():
            raise ValidationError(
                f"SIDESHIFT_SECRET must be a non-empty string. Provided: {self.secret!r}"
            )
        if not isinstance(self.account_id, str) or not self.account_id.strip():
            raise ValidationError(
                f"SIDESHIFT_ID must be a non-empty string. Provided: {self.account_id!r}"
            )
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "commission_rate", str(self.commission_rate))
        object.__setattr__(self, "verbose", bool(self.verbose))

    @property
    def timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000


@dataclass
class RequestAttempt:
    url: str
    method: str
    headers: dict[str, str]
    body: str | None = None
    attempt: int = 0
    # monotonic clock value after which the transport call is abandoned
    deadline: float = 0.0

    def options(self) -> dict[str, Any]:
        """Transport options as surfaced on errors (method, headers, body)."""
        opts: dict[str, Any] = {"method": self.method, "headers": dict(self.headers)}
        if self.body is not None:
            opts["body"] = self.body
        return opts
