from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Sequence

from dtfprint.canvas.normalize import Decoder
from dtfprint.canvas.types import PhysicalSpec
from dtfprint.config import settings
from dtfprint.errors import NoUsableCandidates
from dtfprint.pipeline.acquisition import BatchAcquisition
from dtfprint.pipeline.candidate import (
    CandidateFailure,
    CandidatePipeline,
    CandidateResult,
    StageEvent,
    StageOutcome,
)
from dtfprint.providers.base import BackgroundRemover, ImageGenerator, Vectorizer
from dtfprint.schemas import GenerationRequest

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineRunSummary:
    results: list[CandidateResult]
    failures: list[CandidateFailure]


def run_candidates(
    base_images: Sequence[bytes],
    pipeline: CandidatePipeline,
    *,
    max_workers: int | None = None,
) -> PipelineRunSummary:
    """Run ``pipeline`` over every base image concurrently.

    A candidate that fails a mandatory stage is reported in ``failures`` and
    never affects its siblings. Results come back ordered by index; when no
    candidate survives, NoUsableCandidates is raised.
    """
    if not base_images:
        raise ValueError("base_images must not be empty")

    workers = max(1, min(max_workers or settings.pipeline_max_workers, len(base_images)))
    results: list[CandidateResult] = []
    failures: list[CandidateFailure] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="candidate") as executor:
        futures = {
            executor.submit(pipeline.run, idx, data): idx for idx, data in enumerate(base_images)
        }
        for future in as_completed(futures):
            idx = futures[future]
            try:
                outcome = future.result()
            except Exception as exc:  # noqa: BLE001 - isolate unexpected errors to one candidate
                logger.exception("[candidate %d] crashed outside a stage", idx)
                outcome = CandidateFailure(
                    index=idx,
                    stage="pipeline",
                    reason=f"{type(exc).__name__}: {exc}",
                    stage_log=(("pipeline", StageOutcome.failed(str(exc))),),
                )
            if isinstance(outcome, CandidateFailure):
                logger.warning(
                    "[candidate %d] dropped at %s: %s", outcome.index, outcome.stage, outcome.reason
                )
                failures.append(outcome)
            else:
                results.append(outcome)

    results.sort(key=lambda r: r.index)
    failures.sort(key=lambda f: f.index)
    logger.info("candidates finished: ok=%d failed=%d", len(results), len(failures))
    if not results:
        reasons = ", ".join(f"#{f.index} {f.stage}: {f.reason}" for f in failures)
        raise NoUsableCandidates(f"all {len(failures)} candidates failed: {reasons}", failures=failures)
    return PipelineRunSummary(results=results, failures=failures)


def generate_candidates(
    request: GenerationRequest,
    *,
    generator: ImageGenerator,
    background_remover: BackgroundRemover | None = None,
    vectorizer: Vectorizer | None = None,
    spec: PhysicalSpec | None = None,
    decoders: Sequence[Decoder] | None = None,
    on_event: Callable[[StageEvent], None] | None = None,
    max_workers: int | None = None,
    attempt_cap: int | None = None,
    backoff_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[CandidateResult]:
    """Acquire ``request.variation_count`` base images and turn each into print assets.

    Raises:
        InvalidDimensions: the physical spec cannot produce a raster
        InsufficientCandidates / NoCandidates: the generator under-delivered
        NoUsableCandidates: every candidate failed a mandatory stage
    """
    spec = spec or request.physical_spec()
    # Build the pipeline first so invalid geometry fails before any provider call.
    pipeline = CandidatePipeline(
        spec,
        remove_background=request.remove_background,
        vectorize=request.vectorize,
        background_remover=background_remover,
        vectorizer=vectorizer,
        decoders=decoders,
        on_event=on_event,
    )

    acquisition = BatchAcquisition(
        generator,
        attempt_cap=attempt_cap,
        backoff_seconds=backoff_seconds,
        sleep=sleep,
    )
    base_images = acquisition.run(request.generator_prompt(), request.variation_count)

    return run_candidates(base_images, pipeline, max_workers=max_workers).results
