import json

import pytest
import requests


def _make_response(status=200, body=None, reason="OK"):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    if body is None:
        resp._content = b""
    elif isinstance(body, bytes):
        resp._content = body
    elif isinstance(body, str):
        resp._content = body.encode()
    else:
        resp._content = json.dumps(body).encode()
    resp.encoding = "utf-8"
    # body already in memory; iter_content replays it
    resp._content_consumed = True
    return resp


@pytest.fixture()
def make_response():
    """Factory for real requests.Response objects with a JSON/bytes/str body."""
    return _make_response
