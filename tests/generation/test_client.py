"""Tests for the image-edit provider client."""

from __future__ import annotations

import asyncio
import base64
import time
from collections.abc import Callable

import httpx
import pytest

from photo_restyle.core.exceptions import (
    NoResultError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from photo_restyle.generation.client import ImageEditClient

pytestmark = pytest.mark.anyio

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler, api_key: str | None = "test-key") -> ImageEditClient:
    return ImageEditClient(
        api_key,
        base_url="https://provider.test/v1",
        model="test-model",
        size=512,
        transport=httpx.MockTransport(handler),
    )


async def test_returns_inline_base64(
    generated_png: bytes, b64_response: Callable[[bytes], httpx.Response]
) -> None:
    async with make_client(lambda request: b64_response(generated_png)) as client:
        assert await client.edit(b"png", "make it purple") == generated_png


async def test_sends_multipart_edit_request(
    generated_png: bytes, b64_response: Callable[[bytes], httpx.Response]
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return b64_response(generated_png)

    async with make_client(handler) as client:
        await client.edit(b"\x89PNG-input", "make it purple")

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://provider.test/v1/images/edits"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content
    for fragment in (b"make it purple", b"512x512", b"test-model", b"\x89PNG-input", b'name="n"'):
        assert fragment in body


async def test_downloads_url_result(generated_png: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/images/edits"):
            return httpx.Response(200, json={"data": [{"url": "https://cdn.test/out.png"}]})
        assert str(request.url) == "https://cdn.test/out.png"
        return httpx.Response(200, content=generated_png)

    async with make_client(handler) as client:
        assert await client.edit(b"png", "prompt") == generated_png


async def test_empty_download_is_no_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/images/edits"):
            return httpx.Response(200, json={"data": [{"url": "https://cdn.test/out.png"}]})
        return httpx.Response(200, content=b"")

    async with make_client(handler) as client:
        with pytest.raises(NoResultError):
            await client.edit(b"png", "prompt")


async def test_failed_download_is_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/images/edits"):
            return httpx.Response(200, json={"data": [{"url": "https://cdn.test/out.png"}]})
        return httpx.Response(403)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamError):
            await client.edit(b"png", "prompt")


async def test_rate_limit() -> None:
    async with make_client(lambda request: httpx.Response(429)) as client:
        with pytest.raises(UpstreamRateLimitError) as exc_info:
            await client.edit(b"png", "prompt")

    assert exc_info.value.status_code == 429


async def test_provider_error_message_is_surfaced() -> None:
    response = httpx.Response(400, json={"error": {"message": "Invalid image format"}})

    async with make_client(lambda request: response) as client:
        with pytest.raises(UpstreamError) as exc_info:
            await client.edit(b"png", "prompt")

    assert "Invalid image format" in str(exc_info.value)
    assert exc_info.value.status_code == 500


async def test_provider_error_without_json() -> None:
    async with make_client(lambda request: httpx.Response(502, text="Bad gateway")) as client:
        with pytest.raises(UpstreamError) as exc_info:
            await client.edit(b"png", "prompt")

    assert "502" in str(exc_info.value)


async def test_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await client.edit(b"png", "prompt")

    assert exc_info.value.status_code == 408


async def test_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamError):
            await client.edit(b"png", "prompt")


@pytest.mark.parametrize(
    "payload",
    [{"data": []}, {"data": [{}]}, {}, []],
)
async def test_no_result(payload: object) -> None:
    async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
        with pytest.raises(NoResultError):
            await client.edit(b"png", "prompt")


async def test_non_json_success() -> None:
    async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(UpstreamError):
            await client.edit(b"png", "prompt")


async def test_invalid_base64() -> None:
    response = httpx.Response(200, json={"data": [{"b64_json": "not base64!!"}]})

    async with make_client(lambda request: response) as client:
        with pytest.raises(UpstreamError):
            await client.edit(b"png", "prompt")


async def test_missing_api_key_fails_before_calling() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"data": [{"b64_json": base64.b64encode(b"x").decode()}]})

    async with make_client(handler, api_key=None) as client:
        with pytest.raises(UpstreamError, match="API key"):
            await client.edit(b"png", "prompt")

    assert calls == []


async def test_timeout_bounds_the_whole_call() -> None:
    """A slow provider hits the client deadline even without an httpx timeout."""

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={"data": [{"b64_json": "eA=="}]})

    client = ImageEditClient(
        "test-key", timeout_seconds=0.1, transport=httpx.MockTransport(handler)
    )
    started = time.monotonic()
    async with client:
        with pytest.raises(UpstreamTimeoutError):
            await client.edit(b"png", "prompt")

    assert time.monotonic() - started < 0.8


async def test_timeout_covers_result_download(generated_png: bytes) -> None:
    """Submit and download share one deadline."""

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.1)
        if request.url.path.endswith("/images/edits"):
            return httpx.Response(200, json={"data": [{"url": "https://cdn.test/out.png"}]})
        return httpx.Response(200, content=generated_png)

    client = ImageEditClient(
        "test-key", timeout_seconds=0.15, transport=httpx.MockTransport(handler)
    )
    async with client:
        with pytest.raises(UpstreamTimeoutError):
            await client.edit(b"png", "prompt")
