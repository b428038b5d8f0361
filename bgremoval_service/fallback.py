"""
Local fallback transforms used when no provider credential is configured.

These do not remove any background. They give the demo endpoint a visibly
different PNG to return, and any of them can be swapped in through
`FALLBACK_MODE` as long as it always yields a PNG or raises
`FallbackTransformError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
from typing import Optional, Protocol, Tuple

import numpy as np
from PIL import Image

from . import config

logger = logging.getLogger(__name__)


class FallbackTransformError(Exception):
    """The fallback could not decode or re-encode the image."""


class FallbackTransform(Protocol):
    name: str

    def __call__(self, image_bytes: bytes) -> bytes:
        ...


def _load_image(image_bytes: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:  # noqa: BLE001
        raise FallbackTransformError("Invalid image data") from exc
    return image


def _split_alpha(image: Image.Image) -> Tuple[Image.Image, Optional[Image.Image]]:
    """Separate RGB from alpha so colour work never touches transparency."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    try:
        if has_alpha:
            rgba = image.convert("RGBA")
            return rgba.convert("RGB"), rgba.getchannel("A")
        return image.convert("RGB"), None
    except Exception as exc:  # noqa: BLE001
        raise FallbackTransformError(f"Unsupported image mode {image.mode}") from exc


def _encode_png(image: Image.Image) -> bytes:
    buf = BytesIO()
    try:
        image.save(buf, format="PNG")
    except Exception as exc:  # noqa: BLE001
        raise FallbackTransformError("Could not encode PNG") from exc
    return buf.getvalue()


@dataclass(frozen=True)
class ModulateTransform:
    """Scale HSV value by `brightness` and saturation by `saturation`."""

    brightness: float = 1.1
    saturation: float = 1.2
    name: str = "modulate"

    def __call__(self, image_bytes: bytes) -> bytes:
        image = _load_image(image_bytes)
        rgb, alpha = _split_alpha(image)

        hsv = np.asarray(rgb.convert("HSV")).astype(np.float32)
        hsv[..., 1] *= self.saturation
        hsv[..., 2] *= self.brightness
        hsv = np.clip(np.rint(hsv), 0, 255).astype(np.uint8)

        channels = [Image.fromarray(np.ascontiguousarray(hsv[..., i])) for i in range(3)]
        out = Image.merge("HSV", channels).convert("RGB")
        if alpha is not None:
            out.putalpha(alpha)
        return _encode_png(out)


@dataclass(frozen=True)
class IdentityTransform:
    """Re-encode the decoded image as PNG without touching pixels."""

    name: str = "identity"

    def __call__(self, image_bytes: bytes) -> bytes:
        image = _load_image(image_bytes)
        rgb, alpha = _split_alpha(image)
        if alpha is not None:
            rgb.putalpha(alpha)
        return _encode_png(rgb)


def build_transform(settings: Optional[config.Settings] = None) -> FallbackTransform:
    """Translate the configured fallback mode into a transform instance."""
    settings = settings or config.get_settings()
    if settings.fallback_mode == "identity":
        return IdentityTransform()
    return ModulateTransform(
        brightness=settings.fallback_brightness,
        saturation=settings.fallback_saturation,
    )
