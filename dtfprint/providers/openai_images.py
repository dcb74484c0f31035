from __future__ import annotations

import logging

import requests
from pydantic import ValidationError

from dtfprint.config import settings
from dtfprint.errors import ProviderError
from dtfprint.providers.responses import ImagesError, decode_generated_images, parse_provider_response

logger = logging.getLogger(__name__)


class OpenAIImageGenerator:
    """ImageGenerator over the OpenAI-compatible ``images/generations`` endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        api_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            raise ProviderError("OPENAI_API_KEY is missing")
        self.api_url = api_url or settings.generator_api_url
        self.model = model or settings.generator_model
        self.timeout = timeout or settings.generator_fetch_timeout_seconds
        self.session = session or requests.Session()

    def _fetch(self, url: str) -> bytes:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    def generate(self, prompt: str, count: int, size_hint: str) -> list[bytes]:
        response = self.session.post(
            self.api_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"model": self.model, "prompt": prompt, "size": size_hint, "n": count},
            timeout=self.timeout,
        )
        logger.info("images request model=%s n=%d -> HTTP %d", self.model, count, response.status_code)

        if not response.ok:
            message = response.text[:200]
            try:
                parsed = parse_provider_response(response.text)
            except ValidationError:
                parsed = None
            if isinstance(parsed, ImagesError):
                message = parsed.error.message
            raise ProviderError(f"image generation failed (HTTP {response.status_code}): {message}")

        return decode_generated_images(response.text, fetch=self._fetch)
