"""Shared test fixtures."""

from __future__ import annotations

import base64
import io
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
import pytest
from PIL import Image

from photo_restyle.core.config import Settings

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


@pytest.fixture
def anyio_backend() -> str:
    """Run coroutine tests on asyncio only (the server's event loop)."""
    return "asyncio"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Settings with artifact directories inside a temp dir."""
    return Settings(
        openai_api_key="test-key",
        upload_dir=temp_dir / "uploads",
        temp_dir=temp_dir / "tmp",
        results_dir=temp_dir / "results",
        styles_file=None,
    )


def encode_image(mode: str, size: tuple[int, int], color: object, fmt: str = "PNG") -> bytes:
    """Encode a solid-color image."""
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)  # type: ignore[arg-type]
    return buf.getvalue()


@pytest.fixture
def sample_jpeg() -> bytes:
    """A small non-square JPEG, like a phone upload."""
    return encode_image("RGB", (64, 48), (200, 30, 30), fmt="JPEG")


@pytest.fixture
def generated_png() -> bytes:
    """Bytes the fake provider returns as the generated image."""
    return encode_image("RGBA", (8, 8), (0, 0, 255, 255))


@pytest.fixture
def b64_response() -> Callable[[bytes], httpx.Response]:
    """Factory for provider success responses carrying inline base64 data."""

    def make(image: bytes) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"b64_json": base64.b64encode(image).decode()}]})

    return make
