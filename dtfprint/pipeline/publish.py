from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Sequence

from dtfprint.config import settings
from dtfprint.pipeline.candidate import CandidateResult
from dtfprint.providers.base import BlobStore

logger = logging.getLogger(__name__)

PNG_CONTENT_TYPE = "image/png"
SVG_CONTENT_TYPE = "image/svg+xml"


@dataclass(slots=True, frozen=True)
class PublishedOption:
    id: str
    index: int
    final_url: str
    proof_url: str
    svg_url: str | None = None


def publish_candidate(
    result: CandidateResult,
    store: BlobStore,
    *,
    dpi: int | None = None,
    prefix: str = "dtf",
    new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> PublishedOption:
    """Upload the final, proof and (when present) vector artifacts of one candidate.

    Each artifact is written exactly once; store errors propagate.
    """
    dpi = dpi or settings.print_dpi
    option_id = new_id()
    final_url = store.put(
        f"{prefix}/{option_id}-final.png",
        result.raster.to_png_bytes(dpi=dpi),
        PNG_CONTENT_TYPE,
    )
    proof_url = store.put(
        f"{prefix}/{option_id}-proof.png",
        result.proof.to_png_bytes(dpi=dpi),
        PNG_CONTENT_TYPE,
    )
    svg_url = None
    if result.vector:
        svg_url = store.put(f"{prefix}/{option_id}-vector.svg", result.vector, SVG_CONTENT_TYPE)

    logger.info("[candidate %d] published as %s", result.index, option_id)
    return PublishedOption(
        id=option_id,
        index=result.index,
        final_url=final_url,
        proof_url=proof_url,
        svg_url=svg_url,
    )


def publish_candidates(
    results: Sequence[CandidateResult],
    store: BlobStore,
    *,
    dpi: int | None = None,
    prefix: str = "dtf",
) -> list[PublishedOption]:
    return [publish_candidate(result, store, dpi=dpi, prefix=prefix) for result in results]
