import json
from collections.abc import Mapping

from .types import DEFAULT_COMMISSION_RATE, ClientConfig

SECRET_HEADER = "x-sideshift-secret"
COMMISSION_HEADER = "commissionRate"
USER_IP_HEADER = "x-user-ip"
FILTERED = "[FILTERED]"


def base_headers() -> dict[str, str]:
    return {"Content-Type": "application/json"}


def token_headers(config: ClientConfig) -> dict[str, str]:
    return {**base_headers(), SECRET_HEADER: config.secret}


def commission_headers(config: ClientConfig) -> dict[str, str]:
    headers = token_headers(config)
    # the remote side already assumes the default rate
    if config.commission_rate != DEFAULT_COMMISSION_RATE:
        headers[COMMISSION_HEADER] = config.commission_rate
    return headers


def user_ip_headers(config: ClientConfig, user_ip: str | None = None) -> dict[str, str]:
    headers = commission_headers(config)
    if user_ip:
        headers[USER_IP_HEADER] = user_ip
    return headers


def image_headers() -> dict[str, str]:
    return {"Accept": "image/svg"}


def mask_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of headers with the shared secret replaced by [FILTERED]."""
    return {k: (FILTERED if k.lower() == SECRET_HEADER else v) for k, v in headers.items()}


def filter_headers(headers: Mapping[str, str] | None) -> str:
    """Render headers for diagnostics; never exposes the shared secret."""
    if headers is None:
        return "None"
    return json.dumps(mask_headers(headers), indent=2)
