from .client import AsyncSideshiftClient, SideshiftClient
from .env import load_config_from_env
from .errors import (
    DecodeError,
    FailureKind,
    HttpStatusError,
    SideshiftError,
    TransportError,
    ValidationError,
)
from .headers import filter_headers, mask_headers
from .response import normalize_response
from .retry import backoff_delay, is_retryable
from .types import BASE_URL, ClientConfig, RequestAttempt, RetryConfig

__all__ = [
    "BASE_URL",
    "ClientConfig",
    "RetryConfig",
    "RequestAttempt",
    "SideshiftClient",
    "AsyncSideshiftClient",
    "SideshiftError",
    "TransportError",
    "HttpStatusError",
    "ValidationError",
    "DecodeError",
    "FailureKind",
    "filter_headers",
    "mask_headers",
    "normalize_response",
    "is_retryable",
    "backoff_delay",
    "load_config_from_env",
]
