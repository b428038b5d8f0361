"""
Background-removal control policy.

`BackgroundRemover.remove` is the entry point used by the HTTP API. The
decision is made once per request, before any processing:

 - provider configured: base64 -> provider -> PNG data URI, or ProviderError;
 - no provider: base64 -> fallback transform -> PNG data URI, degrading to an
   echo of the original payload when the transform fails for any reason.

`process_image_bytes` is the synchronous bytes-in/PNG-out path shared with
the local test script.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable, Optional

from fastapi.concurrency import run_in_threadpool

from . import config
from .encoding import decode_base64, to_png_data_uri, wrap_png_data_uri
from .fallback import FallbackTransform, build_transform
from .provider import BackgroundRemovalProvider, ProviderError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RemovalOutcome:
    processed_image_url: str
    source: str  # "provider" | "fallback" | "echo"
    degraded: bool = False


def process_image_bytes(
    image_bytes: bytes,
    provider: Optional[BackgroundRemovalProvider] = None,
    transform: Optional[FallbackTransform] = None,
) -> bytes:
    """
    Run one image through the provider, or the fallback when there is none.

    Raises:
        ProviderError: when the provider call fails.
        FallbackTransformError: when the fallback cannot decode the image.
    """
    if provider is not None:
        return provider.submit(image_bytes)
    transform = transform or build_transform()
    return transform(image_bytes)


class BackgroundRemover:
    def __init__(
        self,
        settings: config.Settings,
        provider: Optional[BackgroundRemovalProvider] = None,
        transform: Optional[FallbackTransform] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.provider = provider
        self.transform = transform or build_transform(settings)
        self._sleep = sleep

    @property
    def uses_provider(self) -> bool:
        return self.provider is not None

    async def remove(self, image_b64: str) -> RemovalOutcome:
        """
        Process a base64 payload (no `data:` prefix).

        Raises:
            ProviderError: only on the provider path; the fallback path
                always produces an outcome.
        """
        if self.provider is None:
            return await self._remove_with_fallback(image_b64)
        return await self._remove_with_provider(image_b64)

    async def _remove_with_provider(self, image_b64: str) -> RemovalOutcome:
        try:
            image_bytes = decode_base64(image_b64)
        except ValueError as exc:
            raise ProviderError(str(exc)) from exc

        png_bytes = await run_in_threadpool(self.provider.submit, image_bytes)
        logger.info("Provider returned %d bytes", len(png_bytes))
        return RemovalOutcome(processed_image_url=to_png_data_uri(png_bytes), source="provider")

    async def _remove_with_fallback(self, image_b64: str) -> RemovalOutcome:
        logger.info("No API key configured, using %s fallback transform", self.transform.name)
        try:
            image_bytes = decode_base64(image_b64)
            png_bytes = await run_in_threadpool(self.transform, image_bytes)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Fallback transform failed, echoing original image: %s", exc)
            await self._delay(self.settings.echo_delay_seconds)
            return RemovalOutcome(
                processed_image_url=wrap_png_data_uri(image_b64),
                source="echo",
                degraded=True,
            )

        await self._delay(self.settings.fallback_delay_seconds)
        return RemovalOutcome(processed_image_url=to_png_data_uri(png_bytes), source="fallback")

    async def _delay(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)
