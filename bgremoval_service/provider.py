"""
External background-removal provider.

The pipeline only depends on the `BackgroundRemovalProvider` capability
(`submit(image_bytes) -> png_bytes`), so tests and alternative services can
stand in for remove.bg.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from . import config
from .encoding import is_png

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Any failure talking to the provider: transport, auth, or payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackgroundRemovalProvider(Protocol):
    def submit(self, image_bytes: bytes) -> bytes:
        ...


class RemoveBgProvider:
    """Client for the remove.bg HTTP API."""

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.remove.bg/v1.0/removebg",
        size: str = "regular",
        type_: str = "auto",
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ValueError("remove.bg API key is required")
        self.api_key = api_key
        self.api_url = api_url
        self.size = size
        self.type = type_
        self.timeout_seconds = timeout_seconds
        # Default is a fresh connection per call; threadpool workers share no Session.
        self._http = session or requests

    @classmethod
    def from_settings(cls, settings: config.Settings) -> "RemoveBgProvider":
        return cls(
            api_key=settings.remove_bg_api_key or "",
            api_url=settings.remove_bg_api_url,
            size=settings.remove_bg_size,
            type_=settings.remove_bg_type,
            timeout_seconds=settings.request_timeout_seconds,
        )

    def submit(self, image_bytes: bytes) -> bytes:
        """
        Send raw image bytes and return the cutout as PNG bytes.

        Raises:
            ProviderError: on network failure, non-2xx status or a response
                that is not a PNG image.
        """
        try:
            resp = self._http.post(
                self.api_url,
                files={"image_file": ("image", image_bytes)},
                data={"size": self.size, "type": self.type, "format": "png"},
                headers={"X-Api-Key": self.api_key, "Accept": "image/png"},
                timeout=(5, self.timeout_seconds),
            )
        except requests.RequestException as exc:
            raise ProviderError(f"remove.bg request failed: {exc}") from exc

        if not resp.ok:
            raise ProviderError(self._describe_error(resp), status_code=resp.status_code)

        if not is_png(resp.content):
            raise ProviderError(
                "remove.bg returned a non-PNG payload", status_code=resp.status_code
            )
        return resp.content

    @staticmethod
    def _describe_error(resp: requests.Response) -> str:
        message = f"remove.bg API error: {resp.status_code}"
        try:
            payload = resp.json()
        except ValueError:
            return message
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if isinstance(errors, list):
            titles = "; ".join(str(e.get("title", e)) for e in errors if isinstance(e, dict))
            if titles:
                message = f"{message} ({titles})"
        return message


def build_provider(settings: config.Settings) -> Optional[BackgroundRemovalProvider]:
    """Return a remove.bg client when a key is configured, otherwise None."""
    if not settings.has_api_key:
        return None
    return RemoveBgProvider.from_settings(settings)
