import json

from sideshift import ClientConfig, filter_headers
from sideshift.headers import (
    base_headers,
    commission_headers,
    image_headers,
    mask_headers,
    token_headers,
    user_ip_headers,
)


def _cfg(rate="0.5"):
    return ClientConfig(secret="s3cret", account_id="acct", commission_rate=rate)


def test_layered_headers_default_commission():
    assert base_headers() == {"Content-Type": "application/json"}
    assert token_headers(_cfg()) == {
        "Content-Type": "application/json",
        "x-sideshift-secret": "s3cret",
    }
    # default rate is never sent
    assert "commissionRate" not in commission_headers(_cfg())


def test_commission_header_only_when_not_default():
    headers = commission_headers(_cfg("1.2"))
    assert headers["commissionRate"] == "1.2"
    assert headers["x-sideshift-secret"] == "s3cret"


def test_user_ip_header_omitted_when_empty():
    cfg = _cfg("1")
    assert "x-user-ip" not in user_ip_headers(cfg)
    assert "x-user-ip" not in user_ip_headers(cfg, "")
    headers = user_ip_headers(cfg, "1.2.3.4")
    assert headers["x-user-ip"] == "1.2.3.4"
    assert headers["commissionRate"] == "1"


def test_headers_are_fresh_per_call():
    cfg = _cfg()
    first = user_ip_headers(cfg, "1.2.3.4")
    second = user_ip_headers(cfg)
    assert "x-user-ip" in first
    assert "x-user-ip" not in second


def test_image_headers():
    assert image_headers() == {"Accept": "image/svg"}


def test_filter_headers_masks_secret_only():
    headers = {"x-sideshift-secret": "my-secret-key", "content-type": "application/json"}
    rendered = filter_headers(headers)
    assert '"x-sideshift-secret": "[FILTERED]"' in rendered
    assert '"content-type": "application/json"' in rendered
    assert "my-secret-key" not in rendered
    # input untouched
    assert headers["x-sideshift-secret"] == "my-secret-key"


def test_filter_headers_edge_cases():
    assert filter_headers(None) == "None"
    assert json.loads(filter_headers({})) == {}
    assert mask_headers({"X-Sideshift-Secret": "k"}) == {"X-Sideshift-Secret": "[FILTERED]"}
