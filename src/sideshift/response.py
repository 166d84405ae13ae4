import json
import logging
from collections.abc import Mapping
from typing import Any

from .errors import HttpStatusError
from .headers import filter_headers

FALLBACK_ERROR_PAYLOAD = {"message": "Failed to parse error details"}

_logger = logging.getLogger("sideshift")


def _status_text(response) -> str:
    # requests exposes `reason`, httpx exposes `reason_phrase`
    text = getattr(response, "reason_phrase", None)
    if text is None:
        text = getattr(response, "reason", None)
    return text or ""


def _is_success(response) -> bool:
    return 200 <= response.status_code < 300  # noqa: PLR2004


def _render_body(body: Any) -> str:
    if body is None:
        return "No body"
    if isinstance(body, str):
        return body
    return json.dumps(body, indent=2)


def log_request(url: str, options: Mapping[str, Any], logger: logging.Logger = _logger) -> None:
    headers = options.get("headers")
    logger.info(
        "\n=== DEBUG REQUEST ===\n"
        f"URL: {url}\n"
        f"Method: {options.get('method')}\n"
        f"Headers: {filter_headers(headers) if headers else 'None'}\n"
        f"Body: {_render_body(options.get('body'))}\n"
        "====================="
    )


def _error_payload(response) -> Any:
    try:
        return response.json()
    except ValueError:
        pass
    try:
        return response.text
    except (ValueError, UnicodeDecodeError):
        return dict(FALLBACK_ERROR_PAYLOAD)


def normalize_response(
    response,
    url: str,
    options: Mapping[str, Any],
    verbose: bool = False,
    logger: logging.Logger = _logger,
):
    """Return the response untouched on 2xx, else raise HttpStatusError.

    The body of a successful response is not consumed here. For failures the
    error payload is the decoded body's nested "error" field when there is one,
    otherwise the whole decoded body.
    """
    if verbose:
        log_request(url, options, logger)
    if _is_success(response):
        return response

    payload = _error_payload(response)
    if isinstance(payload, Mapping) and payload.get("error") is not None:
        payload = payload["error"]
    status_text = _status_text(response)
    raise HttpStatusError(
        f"HTTP {response.status_code} {status_text}",
        status=response.status_code,
        status_text=status_text,
        url=url,
        options=dict(options),
        error=payload,
    )
