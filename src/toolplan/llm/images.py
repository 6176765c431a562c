"""Async httpx client for Azure OpenAI image generation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from toolplan.cancellation import guarded
from toolplan.exceptions import ImageGenerationError
from toolplan.llm.client import DEFAULT_API_VERSION

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class ImageClient:
    """Azure OpenAI text-to-image client implementing ImageService.

    Every failure -- transport, HTTP status or response shape -- surfaces as
    ImageGenerationError.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 180.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = (
            f"{endpoint.rstrip('/')}/openai/deployments/{deployment}"
            f"/images/generations"
        )
        self._api_version = api_version
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Content-Type": "application/json", "api-key": api_key}

    async def generate(
        self,
        prompt: str,
        width: int,
        height: int,
        *,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Generate one image and return its URL.

        Raises:
            ImageGenerationError: On any failure.
        """
        payload = {"prompt": prompt, "n": 1, "size": f"{width}x{height}"}
        logger.debug("POST %s size=%s", self._url, payload["size"])
        try:
            response = await guarded(
                self._client.post(
                    self._url,
                    params={"api-version": self._api_version},
                    headers=self._headers,
                    json=payload,
                ),
                cancel,
            )
        except httpx.HTTPError as exc:
            raise ImageGenerationError(f"Image request failed: {exc}") from exc

        if response.is_error:
            raise ImageGenerationError(
                f"Image request failed: HTTP {response.status_code} - {response.text}"
            )
        try:
            url = response.json()["data"][0]["url"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ImageGenerationError(
                f"Unexpected image response: {response.text[:200]}"
            ) from exc
        if not url:
            raise ImageGenerationError("Image response carried no URL")
        return url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ImageClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
