import os

from .errors import ValidationError
from .types import DEFAULT_COMMISSION_RATE, ClientConfig, RetryConfig

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_env_file(env_path: str) -> dict[str, str]:
    """Parse a simple .env file into a dict without modifying os.environ.

    Supports basic KEY=VALUE pairs, ignoring comments and blank lines.
    Surrounding single/double quotes are stripped if present.
    """
    values: dict[str, str] = {}
    try:
        with open(env_path) as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip()
                val = val.strip().strip('"').strip("'")
                if key:
                    values[key] = val
    except FileNotFoundError:
        # a missing .env is not an error; the process environment may suffice
        pass
    return values


def _as_number(raw: str, name: str, cast):
    try:
        return cast(raw)
    except ValueError:
        raise ValidationError(f"{name} must be numeric. Provided: {raw!r}") from None


def load_config_from_env(
    prefix: str = "SIDESHIFT_",
    env_path: str | None = None,
    **overrides,
) -> ClientConfig:
    """Build a ClientConfig from environment variables.

    Recognized names (shown with the default prefix):
    - SIDESHIFT_SECRET, SIDESHIFT_ID (required)
    - SIDESHIFT_COMMISSION_RATE
    - SIDESHIFT_VERBOSE ("1", "true", "yes", "on")
    - SIDESHIFT_MAX_RETRIES, SIDESHIFT_RETRY_DELAY_MS, SIDESHIFT_RETRY_BACKOFF,
        SIDESHIFT_RETRY_CAP_DELAY_MS

    If 'env_path' is provided, variables from the .env file augment lookups (without
    mutating the process environment). Values in the actual environment take precedence.

    Keyword overrides (secret, account_id, commission_rate, verbose, retry, base_url)
    win over both.
    """
    file_env = _parse_env_file(env_path) if env_path else {}
    env_map: dict[str, str] = {**file_env, **os.environ}

    def get(name: str) -> str | None:
        return env_map.get(f"{prefix}{name}") or None

    retry_kwargs = {}
    for name, field_name, cast in (
        ("MAX_RETRIES", "max_retries", int),
        ("RETRY_DELAY_MS", "base_delay_ms", int),
        ("RETRY_BACKOFF", "backoff_multiplier", float),
        ("RETRY_CAP_DELAY_MS", "cap_delay_ms", int),
    ):
        raw = get(name)
        if raw is not None:
            retry_kwargs[field_name] = _as_number(raw, f"{prefix}{name}", cast)

    verbose_raw = get("VERBOSE")
    values = {
        "secret": get("SECRET"),
        "account_id": get("ID"),
        "commission_rate": get("COMMISSION_RATE") or DEFAULT_COMMISSION_RATE,
        "verbose": verbose_raw is not None and verbose_raw.lower() in _TRUTHY,
        "retry": RetryConfig(**retry_kwargs),
    }
    values.update(overrides)
    return ClientConfig(**values)
