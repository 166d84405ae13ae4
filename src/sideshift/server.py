import logging

from aiohttp import web

from .client import AsyncSideshiftClient
from .errors import HttpStatusError, SideshiftError, ValidationError

CLIENT_KEY = web.AppKey("sideshift_client", AsyncSideshiftClient)
DEFAULT_PORT = 3000

_logger = logging.getLogger("sideshift")


def _error_status(err: Exception) -> int:
    if isinstance(err, ValidationError):
        return 400
    if isinstance(err, HttpStatusError) and err.status is not None:
        if 400 <= err.status < 500:  # noqa: PLR2004
            return 400
    return 500


def _failed(action: str, err: Exception) -> web.Response:
    status = _error_status(err)
    if status >= 500:  # noqa: PLR2004
        _logger.warning(f"proxy {action} failed: {err}")
    return web.json_response({"error": f"Failed to {action}", "details": str(err)}, status=status)


async def _body(request: web.Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _route(action: str, call):
    """Wrap a coroutine (client, request) -> result into a JSON route handler."""

    async def handler(request: web.Request) -> web.StreamResponse:
        client = request.app[CLIENT_KEY]
        try:
            result = await call(client, request)
        except SideshiftError as err:
            return _failed(action, err)
        if isinstance(result, web.StreamResponse):
            return result
        return web.json_response(result)

    return handler


# ---------- GET ----------


async def _coins(client, request):
    return await client.get_coins()


async def _coin_icon(client, request):
    icon = await client.get_coin_icon(request.match_info["coin"])
    return web.Response(body=icon, content_type="image/svg+xml")


async def _permissions(client, request):
    return await client.get_permissions()


async def _pair(client, request):
    return await client.get_pair(
        request.match_info["from"], request.match_info["to"], request.query.get("amount")
    )


async def _shift(client, request):
    return await client.get_shift(request.match_info["id"])


async def _recent_shifts(client, request):
    return await client.get_recent_shifts(request.query.get("limit"))


async def _xai_stats(client, request):
    return await client.get_xai_stats()


async def _account(client, request):
    return await client.get_account()


async def _checkout(client, request):
    return await client.get_checkout(request.match_info["id"])


# ---------- POST ----------


async def _pairs(client, request):
    body = await _body(request)
    return await client.get_pairs(body.get("coins"))


async def _bulk_shifts(client, request):
    body = await _body(request)
    return await client.get_bulk_shifts(body.get("ids"))


async def _quote(client, request):
    body = await _body(request)
    return await client.request_quote(
        body.get("depositCoin"),
        body.get("depositNetwork"),
        body.get("settleCoin"),
        body.get("settleNetwork"),
        body.get("depositAmount"),
        body.get("settleAmount"),
        user_ip=body.get("userIp"),
    )


async def _fixed_shift(client, request):
    body = await _body(request)
    return await client.create_fixed_shift(
        body.get("settleAddress"),
        body.get("quoteId"),
        settle_memo=body.get("settleMemo"),
        refund_address=body.get("refundAddress"),
        refund_memo=body.get("refundMemo"),
        user_ip=body.get("userIp"),
    )


async def _variable_shift(client, request):
    body = await _body(request)
    return await client.create_variable_shift(
        body.get("settleAddress"),
        body.get("settleCoin"),
        body.get("settleNetwork"),
        body.get("depositCoin"),
        body.get("depositNetwork"),
        refund_address=body.get("refundAddress"),
        settle_memo=body.get("settleMemo"),
        refund_memo=body.get("refundMemo"),
        user_ip=body.get("userIp"),
    )


async def _refund_address(client, request):
    body = await _body(request)
    return await client.set_refund_address(
        request.match_info["id"], body.get("refundAddress"), body.get("refundMemo")
    )


async def _cancel_order(client, request):
    body = await _body(request)
    return await client.cancel_order(body.get("orderId"))


async def _create_checkout(client, request):
    body = await _body(request)
    return await client.create_checkout(
        body.get("settleCoin"),
        body.get("settleNetwork"),
        body.get("settleAmount"),
        body.get("settleAddress"),
        body.get("successUrl"),
        body.get("cancelUrl"),
        settle_memo=body.get("settleMemo"),
        user_ip=body.get("userIp"),
    )


def create_app(client: AsyncSideshiftClient) -> web.Application:
    """Build an aiohttp application exposing one route per client endpoint."""
    app = web.Application()
    app[CLIENT_KEY] = client
    app.add_routes(
        [
            web.get("/coins", _route("fetch coins", _coins)),
            web.get("/coin-icon/{coin}", _route("fetch coin icon", _coin_icon)),
            web.get("/permissions", _route("fetch permissions", _permissions)),
            web.get("/pair/{from}/{to}", _route("fetch pair info", _pair)),
            web.get("/shifts/{id}", _route("fetch shift", _shift)),
            web.get("/recent-shifts", _route("fetch recent shifts", _recent_shifts)),
            web.get("/xai/stats", _route("fetch XAI stats", _xai_stats)),
            web.get("/account", _route("fetch account", _account)),
            web.get("/checkout/{id}", _route("fetch checkout", _checkout)),
            web.post("/pairs", _route("fetch pairs", _pairs)),
            web.post("/shifts/bulk", _route("fetch bulk shifts", _bulk_shifts)),
            web.post("/quotes", _route("request quote", _quote)),
            web.post("/shifts/fixed", _route("create fixed shift", _fixed_shift)),
            web.post("/shifts/variable", _route("create variable shift", _variable_shift)),
            web.post(
                "/shifts/{id}/set-refund-address",
                _route("set refund address", _refund_address),
            ),
            web.post("/cancel-order", _route("cancel order", _cancel_order)),
            web.post("/checkout", _route("create checkout", _create_checkout)),
        ]
    )
    return app


def run(client: AsyncSideshiftClient, host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> None:
    web.run_app(create_app(client), host=host, port=port)
