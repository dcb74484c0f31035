"""
Parsing of image-generation provider payloads.

Provider JSON comes back either as a list of generated items or as an error
object. Both shapes are parsed into explicit models instead of probing fields:

    {"data": [{"b64_json": "..."}, {"url": "https://..."}]}   -> ImagesOk
    {"error": {"message": "quota exceeded"}}                   -> ImagesError
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Annotated, Any, Callable, Literal, Union

import requests
from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter, field_validator

from dtfprint.config import settings
from dtfprint.errors import ProviderError

logger = logging.getLogger(__name__)


class GeneratedImage(BaseModel):
    b64_json: str | None = None
    url: str | None = None


class ImagesOk(BaseModel):
    kind: Literal["ok"] = "ok"
    data: list[GeneratedImage] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    message: str = "unknown provider error"
    code: str | int | None = None


class ImagesError(BaseModel):
    kind: Literal["error"] = "error"
    error: ErrorDetail

    @field_validator("error", mode="before")
    @classmethod
    def _wrap_bare_message(cls, value: Any) -> Any:
        # some gateways send {"error": "quota exceeded"}
        if isinstance(value, str):
            return {"message": value}
        return value


def _response_kind(value: Any) -> str:
    if isinstance(value, BaseModel):
        return getattr(value, "kind", "ok")
    if isinstance(value, dict) and value.get("error"):
        return "error"
    return "ok"


ProviderResponse = Annotated[
    Union[
        Annotated[ImagesOk, Tag("ok")],
        Annotated[ImagesError, Tag("error")],
    ],
    Discriminator(_response_kind),
]

_response_adapter: TypeAdapter[ImagesOk | ImagesError] = TypeAdapter(ProviderResponse)


def parse_provider_response(payload: dict[str, Any] | str | bytes) -> ImagesOk | ImagesError:
    if isinstance(payload, (str, bytes)):
        return _response_adapter.validate_json(payload)
    return _response_adapter.validate_python(payload)


def fetch_url(url: str) -> bytes:
    response = requests.get(url, timeout=settings.generator_fetch_timeout_seconds)
    response.raise_for_status()
    return response.content


def decode_generated_images(
    payload: dict[str, Any] | str | bytes,
    *,
    fetch: Callable[[str], bytes] = fetch_url,
) -> list[bytes]:
    """Turn a provider payload into encoded image buffers.

    Raises ProviderError for error payloads. Items that carry neither inline
    data nor a URL, or whose data cannot be read, are dropped and logged; the
    caller's retry loop makes up the shortfall.
    """
    response = parse_provider_response(payload)
    if isinstance(response, ImagesError):
        raise ProviderError(f"provider error: {response.error.message}")

    images: list[bytes] = []
    for idx, item in enumerate(response.data):
        if item.b64_json:
            try:
                images.append(base64.b64decode(item.b64_json, validate=True))
            except (binascii.Error, ValueError) as exc:
                logger.warning("item %d: invalid base64 payload: %s", idx, exc)
            continue
        if item.url:
            try:
                images.append(fetch(item.url))
            except requests.RequestException as exc:
                logger.warning("item %d: failed to fetch %s: %s", idx, item.url, exc)
            continue
        logger.warning("item %d had neither b64_json nor url", idx)
    return images
