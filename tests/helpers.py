from __future__ import annotations

from io import BytesIO
from typing import List, Optional

from PIL import Image


def make_png(color=(255, 0, 0), size=(1, 1), mode="RGB") -> bytes:
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeProvider:
    def __init__(self, result: Optional[bytes] = None, error: Optional[Exception] = None):
        self.result = result if result is not None else make_png((0, 0, 255))
        self.error = error
        self.calls: List[bytes] = []

    def submit(self, image_bytes: bytes) -> bytes:
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return self.result
