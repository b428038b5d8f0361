from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bgremoval_service.api import create_app
from bgremoval_service.config import Settings
from bgremoval_service.encoding import encode_base64
from bgremoval_service.provider import ProviderError

from .helpers import FakeProvider, make_png


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        remove_bg_api_key=None,
        fallback_delay_seconds=0,
        echo_delay_seconds=0,
    )


@pytest.fixture
def red_pixel_b64() -> str:
    return encode_base64(make_png())


@pytest.fixture
def client(settings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture
def failing_provider() -> FakeProvider:
    return FakeProvider(error=ProviderError("remove.bg API error: 403 (API key sk-live-secret invalid)"))
