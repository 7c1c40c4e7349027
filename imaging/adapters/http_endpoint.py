"""Generic HTTP image endpoint adapter with retry on transport errors."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.exceptions import ImageGenerationError

from .base import BaseImageAdapter, GeneratedImage, compose_image_prompt


logger = logging.getLogger(__name__)


def _extract_image_url(payload: Dict[str, Any]) -> str:
    """Accept ``{url}``, ``{image}`` or OpenAI-style ``{data: [{url | b64_json}]}``."""
    for key in ("url", "image", "image_url"):
        value = str(payload.get(key) or "").strip()
        if value:
            return value
    data = payload.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        first = data[0]
        url = str(first.get("url") or "").strip()
        if url:
            return url
        b64_value = str(first.get("b64_json") or "").strip()
        if b64_value:
            return f"data:image/png;base64,{b64_value}"
    return ""


class HttpImageAdapter(BaseImageAdapter):
    """POSTs ``{prompt, width, height}`` to a configured endpoint."""

    provider = "http"

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        timeout_s: float = 60.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint_url = str(endpoint_url or "").strip()
        self.api_key = str(api_key or "").strip()
        self.timeout_s = float(timeout_s)
        self.max_retries = max(1, int(max_retries))
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, request_payload: Dict[str, Any]) -> httpx.Response:
        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async def _send() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                return await client.post(self.endpoint_url, headers=self._headers(), json=request_payload)

        return await _send()

    async def generate_image(
        self,
        prompt: str,
        *,
        style_hint: Optional[str] = None,
        width: int = 1024,
        height: int = 1024,
    ) -> GeneratedImage:
        if not self.endpoint_url:
            raise ImageGenerationError("Image endpoint not configured: IMAGE_ENDPOINT_URL", provider=self.provider)

        full_prompt = compose_image_prompt(prompt, style_hint)
        request_payload = {"prompt": full_prompt, "width": int(width), "height": int(height)}

        try:
            response = await self._post(request_payload)
        except httpx.TimeoutException as exc:
            raise ImageGenerationError("Image endpoint timeout", provider=self.provider) from exc
        except httpx.TransportError as exc:
            raise ImageGenerationError(f"Image endpoint request failed: {exc}", provider=self.provider) from exc

        if response.status_code in {401, 403}:
            raise ImageGenerationError("Image endpoint auth failed", provider=self.provider)
        if response.status_code == 429:
            raise ImageGenerationError("Image endpoint quota exceeded", provider=self.provider)
        if response.status_code >= 400:
            raise ImageGenerationError(
                f"Image endpoint http {response.status_code}",
                provider=self.provider,
                body=response.text[:200],
            )

        try:
            payload = dict(response.json() or {})
        except ValueError as exc:
            raise ImageGenerationError("Image endpoint returned invalid JSON", provider=self.provider) from exc

        url = _extract_image_url(payload)
        if not url:
            raise ImageGenerationError("Image endpoint response missing image url", provider=self.provider)

        logger.info("Image endpoint returned image for prompt of %d chars", len(full_prompt))
        return GeneratedImage(
            url=url,
            provider=self.provider,
            model=str(payload.get("model") or ""),
            metadata={"prompt": full_prompt, "width": int(width), "height": int(height)},
        )
