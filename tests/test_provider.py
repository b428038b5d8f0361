from __future__ import annotations

import json

import pytest
import requests

from bgremoval_service.config import Settings
from bgremoval_service.provider import ProviderError, RemoveBgProvider, build_provider

from .helpers import make_png


def _response(status_code: int, content: bytes = b"", json_body=None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    if json_body is not None:
        content = json.dumps(json_body).encode()
        resp.headers["Content-Type"] = "application/json"
    resp._content = content
    return resp


class RecordingSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def test_submit_sends_expected_request():
    cutout = make_png((0, 0, 0, 0), mode="RGBA")
    session = RecordingSession(_response(200, cutout))
    provider = RemoveBgProvider("key-123", session=session)

    assert provider.submit(b"raw-image") == cutout

    url, kwargs = session.calls[0]
    assert url == "https://api.remove.bg/v1.0/removebg"
    assert kwargs["headers"]["X-Api-Key"] == "key-123"
    assert kwargs["data"]["size"] == "regular"
    assert kwargs["data"]["type"] == "auto"
    assert kwargs["files"]["image_file"][1] == b"raw-image"


def test_http_error_includes_provider_titles():
    body = {"errors": [{"title": "Insufficient credits"}]}
    provider = RemoveBgProvider("k", session=RecordingSession(_response(402, json_body=body)))

    with pytest.raises(ProviderError) as excinfo:
        provider.submit(b"img")

    assert excinfo.value.status_code == 402
    assert "Insufficient credits" in str(excinfo.value)


def test_non_json_error_body():
    provider = RemoveBgProvider("k", session=RecordingSession(_response(503, b"<html>down</html>")))
    with pytest.raises(ProviderError, match="503"):
        provider.submit(b"img")


def test_network_failure_is_wrapped():
    provider = RemoveBgProvider("k", session=RecordingSession(error=requests.Timeout("slow")))
    with pytest.raises(ProviderError):
        provider.submit(b"img")


def test_non_png_payload_is_rejected():
    provider = RemoveBgProvider("k", session=RecordingSession(_response(200, b"{}")))
    with pytest.raises(ProviderError, match="non-PNG"):
        provider.submit(b"img")


def test_empty_key_is_refused():
    with pytest.raises(ValueError):
        RemoveBgProvider("")


def test_build_provider_depends_on_key():
    assert build_provider(Settings(_env_file=None, remove_bg_api_key=None)) is None

    provider = build_provider(
        Settings(_env_file=None, remove_bg_api_key="abc", remove_bg_size="full", request_timeout_seconds=7)
    )
    assert isinstance(provider, RemoveBgProvider)
    assert provider.size == "full"
    assert provider.timeout_seconds == 7


def test_default_transport_is_module_level_requests(monkeypatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append(url)
        return _response(200, make_png())

    monkeypatch.setattr(requests, "post", fake_post)
    provider = RemoveBgProvider("k")

    assert provider.submit(b"img") == make_png()
    assert calls == ["https://api.remove.bg/v1.0/removebg"]
