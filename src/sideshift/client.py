import asyncio
import contextlib
import json
import logging
import time
from typing import Any, Union
from urllib.parse import quote, urlencode

from .env import load_config_from_env
from .errors import DecodeError, SideshiftError, TransportError, ValidationError
from .headers import (
    base_headers,
    commission_headers,
    image_headers,
    token_headers,
    user_ip_headers,
)
from .response import normalize_response
from .retry import backoff_delay, is_retryable
from .types import DEFAULT_COMMISSION_RATE, ClientConfig, RequestAttempt, RetryConfig
from .validation import (
    validate_array,
    validate_number,
    validate_optional_string,
    validate_string,
)

NO_CONTENT = 204
RECENT_SHIFTS_MIN = 1
RECENT_SHIFTS_MAX = 100
RECENT_SHIFTS_DEFAULT = 10
READ_CHUNK_SIZE = 8192


def _path(value: str) -> str:
    return quote(value, safe="")


def _as_number(value: Any, field_name: str, source: str) -> Union[int, float]:
    """Coerce numeric strings the way a query parameter would be read back."""
    if isinstance(value, str):
        with contextlib.suppress(ValueError):
            value = float(value)
    validate_number(value, field_name, source)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# ---------- Shared policy: config, headers, retry decisions, decoding, endpoints ----------


class _BaseClient:
    def __init__(
        self,
        config: Union[ClientConfig, None] = None,
        *,
        secret: Union[str, None] = None,
        account_id: Union[str, None] = None,
        commission_rate: str = DEFAULT_COMMISSION_RATE,
        verbose: bool = False,
        log_level: Union[int, None] = None,
        **kwargs,
    ):
        """Initialize a client.

        Args:
            config (ClientConfig | None): full configuration; wins over the keywords below
            secret (str | None): shared secret sent as x-sideshift-secret
            account_id (str | None): account (affiliate) id
            commission_rate (str): commission rate, "0.5" is the service default
            verbose (bool): log every request (secret masked) and every retry
            log_level (int | None): level applied to the "sideshift" logger
            kwargs:
            - retry_config: RetryConfig object
            - max_retries: int
            - retry_delay_ms: int
            - retry_backoff: float
            - retry_cap_delay_ms: int
            - base_url: str

        Raises:
            ValidationError: if the secret, account id or retry settings are invalid
        """
        if config is None:
            rconf = kwargs.get("retry_config")
            if rconf is None:
                defaults = RetryConfig()
                rconf = RetryConfig(
                    max_retries=kwargs.get("max_retries", defaults.max_retries),
                    base_delay_ms=kwargs.get("retry_delay_ms", defaults.base_delay_ms),
                    backoff_multiplier=kwargs.get("retry_backoff", defaults.backoff_multiplier),
                    cap_delay_ms=kwargs.get("retry_cap_delay_ms", defaults.cap_delay_ms),
                )
            extra = {"base_url": kwargs["base_url"]} if kwargs.get("base_url") else {}
            config = ClientConfig(
                secret=secret,
                account_id=account_id,
                commission_rate=commission_rate,
                verbose=verbose,
                retry=rconf,
                **extra,
            )
        self.config = config
        self._logger = logging.getLogger("sideshift")
        if log_level is not None:
            self._logger.setLevel(log_level)

    @classmethod
    def from_env(cls, prefix: str = "SIDESHIFT_", env_path: Union[str, None] = None, **kwargs):
        """Create a client from SIDESHIFT_* environment variables (see load_config_from_env).

        Keywords naming ClientConfig fields override the environment; the rest are
        passed to the client constructor.
        """
        config_keys = {"secret", "account_id", "commission_rate", "verbose", "retry", "base_url"}
        overrides = {k: kwargs.pop(k) for k in list(kwargs.keys()) if k in config_keys}
        config = load_config_from_env(prefix=prefix, env_path=env_path, **overrides)
        return cls(config, **kwargs)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    # ---------- attempt helpers ----------
    def _check_url(self, url) -> None:
        if not url or not isinstance(url, str):
            raise ValidationError(f"Invalid URL: must be a non-empty string. Provided: {url!r}")

    def _new_attempt(
        self, url: str, method: str, headers: dict[str, str], body: Union[str, None], attempt: int
    ) -> RequestAttempt:
        return RequestAttempt(
            url=url,
            method=method,
            headers=dict(headers),
            body=body,
            attempt=attempt,
            deadline=time.monotonic() + self.config.timeout_seconds,
        )

    def _transport_error(self, req: RequestAttempt, exc: BaseException, timed_out: bool):
        if timed_out:
            message = f"Request timeout after {self.config.request_timeout_ms}ms"
        else:
            message = f"fetch failed: {exc}"
        return TransportError(message, url=req.url, options=req.options(), error=str(exc))

    def _should_retry(self, err: SideshiftError, attempt: int) -> bool:
        return attempt < self.config.retry.max_retries and is_retryable(err)

    def _retry_delay(self, err: SideshiftError, attempt: int, binary: bool) -> int:
        delay = backoff_delay(attempt, self.config.retry)
        what = "Image request" if binary else "Request"
        level = logging.WARNING if self.config.verbose else logging.DEBUG
        self._logger.log(
            level,
            f"{what} failed, retrying in {delay}ms (attempt={attempt + 1}"
            f"/{self.config.retry.max_retries}) url={err.url}: {err.message}",
        )
        return delay

    def _failure(self, err: SideshiftError, binary: bool) -> SideshiftError:
        return err.wrap("Fetch API image error" if binary else "Fetch API error")

    def _cancelled(self, body: Union[str, None]) -> dict[str, Any]:
        order_id = None
        if isinstance(body, str):
            try:
                order_id = json.loads(body).get("orderId")
            except (ValueError, AttributeError) as e:
                if self.config.verbose:
                    self._logger.error(f"Failed to parse request body: {e}")
        return {"success": True, "orderId": order_id}

    def _decode(self, response, req: RequestAttempt, binary: bool):
        if binary:
            return response.content
        if req.url == f"{self.base_url}/cancel-order" and response.status_code == NO_CONTENT:
            return self._cancelled(req.body)
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"Failed to decode JSON response: {e}",
                status=response.status_code,
                url=req.url,
                options=req.options(),
                error=str(e),
            ) from e

    def _request(self, url, method="GET", headers=None, body=None, *, binary=False):
        raise NotImplementedError

    def _request_image(self, url, headers=None):
        return self._request(url, "GET", headers or image_headers(), binary=True)

    # ---------- endpoints: GET ----------
    def get_coins(self):
        """List supported coins."""
        return self._request(f"{self.base_url}/coins", "GET", base_headers())

    def get_coin_icon(self, coin: str):
        """Fetch a coin icon; resolves to raw image bytes."""
        coin = validate_string(coin, "coin", "getCoinIcon")
        return self._request_image(f"{self.base_url}/coins/icon/{_path(coin)}")

    def get_permissions(self):
        return self._request(f"{self.base_url}/permissions", "GET", base_headers())

    def get_pair(self, from_coin: str, to_coin: str, amount=None):
        from_coin = validate_string(from_coin, "from", "getPair")
        to_coin = validate_string(to_coin, "to", "getPair")
        params: dict[str, Any] = {"affiliateId": self.config.account_id}
        if amount:
            params["amount"] = _as_number(amount, "amount", "getPair")
        return self._request(
            f"{self.base_url}/pair/{_path(from_coin)}/{_path(to_coin)}/?{urlencode(params)}",
            "GET",
            commission_headers(self.config),
        )

    def get_pairs(self, coins: list[str]):
        """Pairs for coins given as "coin-network" strings, e.g. ["btc-mainnet", "usdc-bsc"]."""
        coins = validate_array(coins, "arrayOfCoins", "getPairs")
        params = {"pairs": ",".join(coins), "affiliateId": self.config.account_id}
        return self._request(
            f"{self.base_url}/pairs?{urlencode(params)}", "GET", commission_headers(self.config)
        )

    def get_shift(self, shift_id: str):
        shift_id = validate_string(shift_id, "shiftId", "getShift")
        return self._request(f"{self.base_url}/shifts/{_path(shift_id)}", "GET", base_headers())

    def get_bulk_shifts(self, ids: list[str]):
        ids = validate_array(ids, "arrayOfIds", "getBulkShifts")
        return self._request(
            f"{self.base_url}/shifts?{urlencode({'ids': ','.join(ids)})}", "GET", base_headers()
        )

    def get_recent_shifts(self, limit=None):
        """Most recent shifts; limit is clamped to 1..100."""
        if not limit:
            return self._request(f"{self.base_url}/recent-shifts", "GET", base_headers())
        limit = _as_number(limit, "limit", "getRecentShifts")
        clamped = int(
            min(max(limit or RECENT_SHIFTS_DEFAULT, RECENT_SHIFTS_MIN), RECENT_SHIFTS_MAX)
        )
        return self._request(
            f"{self.base_url}/recent-shifts?{urlencode({'limit': clamped})}", "GET", base_headers()
        )

    def get_xai_stats(self):
        return self._request(f"{self.base_url}/xai/stats", "GET", base_headers())

    def get_account(self):
        return self._request(f"{self.base_url}/account", "GET", token_headers(self.config))

    def get_checkout(self, checkout_id: str):
        checkout_id = validate_string(checkout_id, "checkoutId", "getCheckout")
        return self._request(
            f"{self.base_url}/checkout/{_path(checkout_id)}", "GET", token_headers(self.config)
        )

    # ---------- endpoints: POST ----------
    def _post(self, path: str, payload: dict[str, Any], headers: dict[str, str]):
        return self._request(f"{self.base_url}{path}", "POST", headers, json.dumps(payload))

    def request_quote(
        self,
        deposit_coin: str,
        deposit_network: str,
        settle_coin: str,
        settle_network: str,
        deposit_amount=None,
        settle_amount=None,
        user_ip: Union[str, None] = None,
    ):
        """Request a quote; give either deposit_amount or settle_amount."""
        source = "requestQuote"
        payload = {
            "depositCoin": validate_string(deposit_coin, "depositCoin", source),
            "depositNetwork": validate_string(deposit_network, "depositNetwork", source),
            "settleCoin": validate_string(settle_coin, "settleCoin", source),
            "settleNetwork": validate_string(settle_network, "settleNetwork", source),
            "depositAmount": validate_number(deposit_amount, "depositAmount", source),
            "settleAmount": validate_number(settle_amount, "settleAmount", source),
            "affiliateId": self.config.account_id,
        }
        user_ip = validate_optional_string(user_ip, "userIp", source)
        return self._post("/quotes", payload, user_ip_headers(self.config, user_ip))

    def create_fixed_shift(
        self,
        settle_address: str,
        quote_id: str,
        settle_memo: Union[str, None] = None,
        refund_address: Union[str, None] = None,
        refund_memo: Union[str, None] = None,
        user_ip: Union[str, None] = None,
    ):
        source = "createFixedShift"
        payload = {
            "settleAddress": validate_string(settle_address, "settleAddress", source),
            "affiliateId": self.config.account_id,
            "quoteId": validate_string(quote_id, "quoteId", source),
        }
        optional = {
            "settleMemo": validate_optional_string(settle_memo, "settleMemo", source),
            "refundAddress": validate_optional_string(refund_address, "refundAddress", source),
            "refundMemo": validate_optional_string(refund_memo, "refundMemo", source),
        }
        payload.update({k: v for k, v in optional.items() if v})
        user_ip = validate_optional_string(user_ip, "userIp", source)
        return self._post("/shifts/fixed", payload, user_ip_headers(self.config, user_ip))

    def create_variable_shift(
        self,
        settle_address: str,
        settle_coin: str,
        settle_network: str,
        deposit_coin: str,
        deposit_network: str,
        refund_address: Union[str, None] = None,
        settle_memo: Union[str, None] = None,
        refund_memo: Union[str, None] = None,
        user_ip: Union[str, None] = None,
    ):
        source = "createVariableShift"
        payload = {
            "settleAddress": validate_string(settle_address, "settleAddress", source),
            "settleCoin": validate_string(settle_coin, "settleCoin", source),
            "settleNetwork": validate_string(settle_network, "settleNetwork", source),
            "depositCoin": validate_string(deposit_coin, "depositCoin", source),
            "depositNetwork": validate_string(deposit_network, "depositNetwork", source),
            "affiliateId": self.config.account_id,
        }
        optional = {
            "settleMemo": validate_optional_string(settle_memo, "settleMemo", source),
            "refundAddress": validate_optional_string(refund_address, "refundAddress", source),
            "refundMemo": validate_optional_string(refund_memo, "refundMemo", source),
        }
        payload.update({k: v for k, v in optional.items() if v})
        user_ip = validate_optional_string(user_ip, "userIp", source)
        return self._post("/shifts/variable", payload, user_ip_headers(self.config, user_ip))

    def set_refund_address(
        self, shift_id: str, refund_address: str, refund_memo: Union[str, None] = None
    ):
        source = "setRefundAddress"
        shift_id = validate_string(shift_id, "shiftId", source)
        payload = {"address": validate_string(refund_address, "refundAddress", source)}
        refund_memo = validate_optional_string(refund_memo, "refundMemo", source)
        if refund_memo:
            payload["memo"] = refund_memo
        return self._post(
            f"/shifts/{_path(shift_id)}/set-refund-address", payload, token_headers(self.config)
        )

    def cancel_order(self, order_id: str):
        """Cancel an order; a 204 answer resolves to {"success": True, "orderId": ...}."""
        order_id = validate_string(order_id, "orderId", "cancelOrder")
        return self._post("/cancel-order", {"orderId": order_id}, token_headers(self.config))

    def create_checkout(
        self,
        settle_coin: str,
        settle_network: str,
        settle_amount,
        settle_address: str,
        success_url: str,
        cancel_url: str,
        settle_memo: Union[str, None] = None,
        user_ip: Union[str, None] = None,
    ):
        source = "createCheckout"
        payload = {
            "settleCoin": validate_string(settle_coin, "settleCoin", source),
            "settleNetwork": validate_string(settle_network, "settleNetwork", source),
            "settleAmount": validate_number(settle_amount, "settleAmount", source),
            "settleAddress": validate_string(settle_address, "settleAddress", source),
            "successUrl": validate_string(success_url, "successUrl", source),
            "cancelUrl": validate_string(cancel_url, "cancelUrl", source),
            "affiliateId": self.config.account_id,
        }
        settle_memo = validate_optional_string(settle_memo, "settleMemo", source)
        if settle_memo:
            payload["settleMemo"] = settle_memo
        user_ip = validate_optional_string(user_ip, "userIp", source)
        return self._post("/checkout", payload, user_ip_headers(self.config, user_ip))


# ---------- Sync client (requests) ----------


class SideshiftClient(_BaseClient):
    """Blocking client; each endpoint method returns the decoded result."""

    def __init__(self, config: Union[ClientConfig, None] = None, *, session=None, **kwargs):
        super().__init__(config, **kwargs)
        self.session = session

    def _sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def _send(self, sess, req: RequestAttempt):
        import requests  # noqa: PLC0415

        try:
            resp = sess.request(
                req.method,
                req.url,
                headers=req.headers,
                data=req.body,
                timeout=self.config.timeout_seconds,
                stream=True,
            )
            self._read_body(resp, req)
            return resp
        except requests.Timeout as e:
            raise self._transport_error(req, e, timed_out=True) from e
        except requests.RequestException as e:
            raise self._transport_error(req, e, timed_out=False) from e

    def _read_body(self, resp, req: RequestAttempt) -> None:
        """Read the streamed body, aborting once the attempt deadline has passed.

        `timeout=` in requests bounds each socket read, not the whole transfer.
        """
        chunks = []
        try:
            for chunk in resp.iter_content(chunk_size=READ_CHUNK_SIZE):
                if time.monotonic() > req.deadline:
                    break
                chunks.append(chunk)
            if time.monotonic() > req.deadline:
                raise self._transport_error(
                    req, TimeoutError(f"deadline exceeded reading {req.url}"), timed_out=True
                )
        finally:
            resp.close()
        resp._content = b"".join(chunks)
        resp._content_consumed = True

    def _request(self, url, method="GET", headers=None, body=None, *, binary=False):
        import requests  # noqa: PLC0415

        self._check_url(url)
        sess = self.session or requests.Session()
        own_session = self.session is None
        attempt = 0
        try:
            while True:
                req = self._new_attempt(url, method, headers or base_headers(), body, attempt)
                try:
                    resp = self._send(sess, req)
                    normalize_response(
                        resp, url, req.options(), self.config.verbose, self._logger
                    )
                    return self._decode(resp, req, binary)
                except SideshiftError as err:
                    if not self._should_retry(err, attempt):
                        raise self._failure(err, binary) from err
                    self._sleep(self._retry_delay(err, attempt, binary) / 1000)
                    attempt += 1
        finally:
            if own_session:
                with contextlib.suppress(Exception):
                    sess.close()


# ---------- Async client (httpx) ----------


class AsyncSideshiftClient(_BaseClient):
    """Non-blocking client; each endpoint method returns an awaitable.

    Input validation still happens eagerly, when the method is called.
    """

    def __init__(
        self,
        config: Union[ClientConfig, None] = None,
        *,
        client=None,
        transport=None,
        **kwargs,
    ):
        super().__init__(config, **kwargs)
        self.client = client
        self.transport = transport

    async def _sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def _send(self, client, req: RequestAttempt):
        import httpx  # noqa: PLC0415

        try:
            return await asyncio.wait_for(
                client.request(req.method, req.url, headers=req.headers, content=req.body),
                timeout=max(0.0, req.deadline - time.monotonic()),
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise self._transport_error(req, e, timed_out=True) from e
        except httpx.TransportError as e:
            raise self._transport_error(req, e, timed_out=False) from e

    async def _request(self, url, method="GET", headers=None, body=None, *, binary=False):
        import httpx  # noqa: PLC0415

        self._check_url(url)
        if self.client is not None:
            return await self._attempts(self.client, url, method, headers, body, binary)
        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.config.timeout_seconds
        ) as client:
            return await self._attempts(client, url, method, headers, body, binary)

    async def _attempts(self, client, url, method, headers, body, binary):
        attempt = 0
        while True:
            req = self._new_attempt(url, method, headers or base_headers(), body, attempt)
            try:
                resp = await self._send(client, req)
                normalize_response(resp, url, req.options(), self.config.verbose, self._logger)
                return self._decode(resp, req, binary)
            except SideshiftError as err:
                if not self._should_retry(err, attempt):
                    raise self._failure(err, binary) from err
                await self._sleep(self._retry_delay(err, attempt, binary) / 1000)
                attempt += 1
