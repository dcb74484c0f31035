from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class ImageGenerator(Protocol):
    def generate(self, prompt: str, count: int, size_hint: str) -> list[bytes]:
        """Return up to ``count`` encoded images for ``prompt``.

        May return fewer than requested; batch acquisition retries for the rest.
        """


class BackgroundRemover(Protocol):
    def remove(self, png_bytes: bytes) -> bytes:
        """Return PNG bytes with the background made transparent."""


@dataclass(slots=True, frozen=True)
class VectorizeResult:
    vector_bytes: bytes
    continuation_token: str | None = None


class Vectorizer(Protocol):
    def vectorize(self, png_bytes: bytes) -> VectorizeResult:
        ...

    def download(self, token: str, output_format: str) -> bytes:
        """Fetch another rendition (``"png"``, ``"svg"``) of a vectorized image."""


class BlobStore(Protocol):
    def put(self, name: str, data: bytes, content_type: str) -> str:
        """Persist ``data`` under ``name`` and return its URL.

        Called once per artifact; retry policy belongs to the implementation.
        """
