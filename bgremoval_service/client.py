"""
Python client for `POST /api/remove-background`.

Mirrors what the browser upload form does: validate the file locally, send
the base64 payload without a `data:` prefix, and either return the decoded
image or raise with the message the server reported so the caller can retry.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Optional, Union

import requests

from .encoding import data_uri_to_bytes, encode_base64

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
NETWORK_ERROR = "Failed to process image. Please try again."


class InvalidUpload(ValueError):
    """The file was rejected before any request was sent."""


class RemovalFailed(RuntimeError):
    """The server reported failure, or could not be reached."""


def build_request(path: Union[str, Path], max_bytes: int = MAX_UPLOAD_BYTES) -> dict:
    path = Path(path)
    if not path.is_file():
        raise InvalidUpload(f"File not found: {path}")

    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        raise InvalidUpload("Please select a valid image file")

    if path.stat().st_size > max_bytes:
        raise InvalidUpload(f"File size must be less than {max_bytes // (1024 * 1024)}MB")

    return {"imageData": encode_base64(path.read_bytes())}


def remove_background(
    path: Union[str, Path],
    base_url: str = "http://127.0.0.1:8000",
    timeout: float = 60,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Upload one image and return the processed image bytes."""
    payload = build_request(path)
    http = session or requests
    try:
        resp = http.post(
            base_url.rstrip("/") + "/api/remove-background", json=payload, timeout=timeout
        )
        body = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise RemovalFailed(NETWORK_ERROR) from exc

    if not isinstance(body, dict) or not body.get("success"):
        body = body if isinstance(body, dict) else {}
        raise RemovalFailed(body.get("error") or NETWORK_ERROR)
    try:
        return data_uri_to_bytes(body["processedImageUrl"])
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise RemovalFailed(NETWORK_ERROR) from exc
