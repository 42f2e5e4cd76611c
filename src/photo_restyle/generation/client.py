"""HTTP client for the OpenAI ``images/edits`` endpoint.

The provider takes an image, a prompt, a target size and a result count, and
answers with either inline base64 data or a URL to download the output from.
Provider failures are mapped onto the upstream error types:

- client-side timeout -> ``UpstreamTimeoutError``. The timeout bounds the
  whole call (submit plus any result download), not each network step.
- HTTP 429 -> ``UpstreamRateLimitError``
- any other failure -> ``UpstreamError``
- success without data or URL -> ``NoResultError``

There is no retry; the only cancellation mechanism is the client timeout.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import TYPE_CHECKING, Any

import httpx

from photo_restyle.core.exceptions import (
    NoResultError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from photo_restyle.core.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from photo_restyle.core.config import Settings

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-image-1"


def _provider_message(response: httpx.Response) -> str:
    """Extract a readable error message from a provider error response."""
    try:
        payload = response.json()
    except ValueError:
        return f"Image provider returned an unexpected error ({response.status_code})"

    error_obj = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error_obj, dict) and error_obj.get("message"):
        return f"Image provider: {error_obj['message']}"
    return f"Image provider returned an unexpected error ({response.status_code})"


class ImageEditClient:
    """Async client for image edits.

    Usage:
        async with ImageEditClient(api_key) as client:
            png = await client.edit(image_png, "make it purple")
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        size: int = 1024,
        timeout_seconds: float = 240.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._size = f"{size}x{size}"
        self._timeout = timeout_seconds
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
            max_redirects=3,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ImageEditClient:
        return cls(
            settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_model,
            size=settings.image_size,
            timeout_seconds=settings.provider_timeout_seconds,
            transport=transport,
        )

    async def edit(self, image_png: bytes, prompt: str) -> bytes:
        """
        Submit an image edit and return the generated image bytes.

        Raises:
            UpstreamTimeoutError: The call exceeded the client timeout
            UpstreamRateLimitError: The provider answered 429
            UpstreamError: Any other provider or transport failure
            NoResultError: The provider returned neither data nor a URL
        """
        if not self._api_key:
            raise UpstreamError("Image provider API key is not configured")

        try:
            async with asyncio.timeout(self._timeout):
                return await self._submit(image_png, prompt)
        except TimeoutError as e:
            logger.warning("Image provider call exceeded %.0fs", self._timeout)
            raise UpstreamTimeoutError() from e

    async def _submit(self, image_png: bytes, prompt: str) -> bytes:
        data = {
            "prompt": prompt,
            "size": self._size,
            "n": "1",
            "model": self._model,
        }
        files = {"image": ("image.png", image_png, "image/png")}

        try:
            response = await self._http.post(
                f"{self._base_url}/images/edits",
                headers={"Authorization": f"Bearer {self._api_key}"},
                data=data,
                files=files,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError() from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Image provider request failed: {e}") from e

        if response.status_code == 429:
            raise UpstreamRateLimitError()
        if response.status_code >= 400:
            logger.error("Image provider error %d: %s", response.status_code, response.text[:500])
            raise UpstreamError(_provider_message(response))

        try:
            payload: Any = response.json()
        except ValueError as e:
            raise UpstreamError("Image provider returned a non-JSON response") from e

        entries = payload.get("data") if isinstance(payload, dict) else None
        first = entries[0] if isinstance(entries, list) and entries else {}
        b64 = first.get("b64_json") if isinstance(first, dict) else None
        url = first.get("url") if isinstance(first, dict) else None

        if b64:
            try:
                return base64.b64decode(b64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise UpstreamError("Image provider returned invalid base64 data") from e
        if url:
            return await self._download(url)
        raise NoResultError()

    async def _download(self, url: str) -> bytes:
        try:
            response = await self._http.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError() from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Could not download generated image: {e}") from e
        if not response.content:
            raise NoResultError()
        return response.content

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ImageEditClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
