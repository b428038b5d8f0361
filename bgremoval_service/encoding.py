"""Base64 and data-URI helpers shared by the API, pipeline and client."""

from __future__ import annotations

import base64
import binascii

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def strip_data_uri_prefix(payload: str) -> str:
    """Drop a leading `data:<mime>;base64,` header if the caller sent one."""
    payload = payload.strip()
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def decode_base64(payload: str) -> bytes:
    """
    Decode a base64 string, tolerating missing padding and embedded whitespace.

    Raises:
        ValueError: when the payload is not valid base64 or decodes to nothing.
    """
    cleaned = "".join(payload.split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        data = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 image data") from exc
    if not data:
        raise ValueError("Image data is empty")
    return data


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def to_png_data_uri(png_bytes: bytes) -> str:
    return PNG_DATA_URI_PREFIX + encode_base64(png_bytes)


def wrap_png_data_uri(payload_b64: str) -> str:
    """Wrap an already-encoded payload without re-encoding it."""
    return PNG_DATA_URI_PREFIX + payload_b64


def data_uri_to_bytes(data_uri: str) -> bytes:
    # data:image/png;base64,xxxx
    return decode_base64(strip_data_uri_prefix(data_uri))


def is_png(data: bytes) -> bool:
    return data.startswith(PNG_MAGIC)
