import httpx
import pytest
from aiohttp import test_utils

from sideshift import AsyncSideshiftClient
from sideshift.server import create_app


def _proxy(handler, **kwargs):
    client = AsyncSideshiftClient(
        secret="s3cret",
        account_id="acct",
        transport=httpx.MockTransport(handler),
        max_retries=0,
        **kwargs,
    )
    return test_utils.TestClient(test_utils.TestServer(create_app(client)))


@pytest.mark.asyncio
async def test_get_route_passes_json_through():
    coins = [{"coin": "BTC"}, {"coin": "ETH"}]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v2/coins"
        return httpx.Response(200, json=coins)

    async with _proxy(handler) as tc:
        resp = await tc.get("/coins")
        assert resp.status == 200  # noqa: PLR2004
        assert await resp.json() == coins


@pytest.mark.asyncio
async def test_query_parameters_forwarded():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={})

    async with _proxy(handler) as tc:
        await tc.get("/pair/btc/eth", params={"amount": "1.5"})
        await tc.get("/recent-shifts", params={"limit": "3"})
    assert seen == [
        "https://sideshift.ai/api/v2/pair/btc/eth/?affiliateId=acct&amount=1.5",
        "https://sideshift.ai/api/v2/recent-shifts?limit=3",
    ]


@pytest.mark.asyncio
async def test_coin_icon_route_returns_image():
    svg = b"<svg></svg>"
    async with _proxy(lambda r: httpx.Response(200, content=svg)) as tc:
        resp = await tc.get("/coin-icon/btc")
        assert resp.status == 200  # noqa: PLR2004
        assert resp.content_type == "image/svg+xml"
        assert await resp.read() == svg


@pytest.mark.asyncio
async def test_cancel_order_route():
    async with _proxy(lambda r: httpx.Response(204)) as tc:
        resp = await tc.post("/cancel-order", json={"orderId": "abc"})
        assert await resp.json() == {"success": True, "orderId": "abc"}


@pytest.mark.asyncio
async def test_validation_error_maps_to_400():
    def handler(request):
        pytest.fail("no upstream call expected")

    async with _proxy(handler) as tc:
        resp = await tc.post("/cancel-order", json={})
        assert resp.status == 400  # noqa: PLR2004
        data = await resp.json()
        assert data["error"] == "Failed to cancel order"
        assert "orderId" in data["details"]

        resp = await tc.post(
            "/pairs", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400  # noqa: PLR2004


@pytest.mark.asyncio
async def test_undecodable_body_maps_to_400():
    def handler(request):
        pytest.fail("no upstream call expected")

    async with _proxy(handler) as tc:
        resp = await tc.post(
            "/cancel-order",
            data=b'{"orderId": "\xff"}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400  # noqa: PLR2004
        data = await resp.json()
        assert data["error"] == "Failed to cancel order"
        assert data["details"] == "Request body must be valid JSON"


@pytest.mark.asyncio
async def test_upstream_errors_mapped():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/account"):
            return httpx.Response(500, text="boom")
        return httpx.Response(404, json={"error": {"message": "Shift not found"}})

    async with _proxy(handler) as tc:
        resp = await tc.get("/account")
        assert resp.status == 500  # noqa: PLR2004
        assert (await resp.json())["error"] == "Failed to fetch account"

        resp = await tc.get("/shifts/missing")
        assert resp.status == 400  # noqa: PLR2004
        assert (await resp.json())["details"] == "Fetch API error: Shift not found"
