from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from dtfprint.canvas.compose import build_bleed_canvas, pad_margin
from dtfprint.canvas.normalize import Decoder, decode_raster, normalize_image
from dtfprint.canvas.proof import render_proof
from dtfprint.canvas.resample import resize_contain
from dtfprint.canvas.types import PhysicalSpec, RasterBuffer, UnverifiedImage
from dtfprint.config import settings
from dtfprint.errors import BackgroundRemovalFailed, VectorizationFailed
from dtfprint.providers.base import BackgroundRemover, Vectorizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_NORMALIZE = "normalize"
STAGE_BACKGROUND_REMOVAL = "background_removal"
STAGE_VECTORIZE = "vectorize"
STAGE_PAD_MARGIN = "pad_margin"
STAGE_RESIZE_TRIM = "resize_trim"
STAGE_FINALIZE = "finalize"
STAGE_PROOF = "proof_overlay"


class OutcomeKind(str, enum.Enum):
    OK = "ok"
    SKIPPED_OPTIONAL = "skipped_optional"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class StageOutcome:
    kind: OutcomeKind
    reason: str | None = None

    @classmethod
    def ok(cls) -> StageOutcome:
        return cls(OutcomeKind.OK)

    @classmethod
    def skipped(cls, reason: str) -> StageOutcome:
        return cls(OutcomeKind.SKIPPED_OPTIONAL, reason)

    @classmethod
    def failed(cls, reason: str) -> StageOutcome:
        return cls(OutcomeKind.FAILED, reason)


@dataclass(slots=True, frozen=True)
class StageEvent:
    candidate_index: int
    stage: str
    outcome: StageOutcome | None  # None marks the start of a stage
    message: str


@dataclass(slots=True, frozen=True)
class CandidateResult:
    index: int
    raster: RasterBuffer
    proof: RasterBuffer
    stage_log: tuple[tuple[str, StageOutcome], ...]
    vector: bytes | None = None

    def outcome_of(self, stage: str) -> StageOutcome | None:
        for name, outcome in self.stage_log:
            if name == stage:
                return outcome
        return None


@dataclass(slots=True, frozen=True)
class CandidateFailure:
    index: int
    stage: str
    reason: str
    stage_log: tuple[tuple[str, StageOutcome], ...]


class _CandidateAborted(Exception):
    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason


class _StageRecorder:
    """Runs stages for one candidate and keeps its ordered stage log."""

    def __init__(self, index: int, on_event: Callable[[StageEvent], None] | None) -> None:
        self.index = index
        self.log: list[tuple[str, StageOutcome]] = []
        self._on_event = on_event

    def _record(self, stage: str, outcome: StageOutcome | None, message: str) -> None:
        if outcome is not None:
            self.log.append((stage, outcome))
        if self._on_event is not None:
            self._on_event(StageEvent(self.index, stage, outcome, message))

    def mandatory(self, stage: str, fn: Callable[[], T]) -> T:
        self._record(stage, None, "start")
        try:
            value = fn()
        except Exception as exc:  # noqa: BLE001 - a failed stage aborts only this candidate
            reason = f"{type(exc).__name__}: {exc}"
            logger.error("[candidate %d] STEP_FAIL %s: %s", self.index, stage, reason)
            self._record(stage, StageOutcome.failed(reason), reason)
            raise _CandidateAborted(stage, reason) from exc
        logger.info("[candidate %d] STEP_OK %s", self.index, stage)
        self._record(stage, StageOutcome.ok(), "ok")
        return value

    def optional(
        self,
        stage: str,
        *,
        requested: bool,
        configured: bool,
        fn: Callable[[], T],
        fallback: T,
    ) -> T:
        if not requested:
            self._record(stage, StageOutcome.skipped("not requested"), "not requested")
            return fallback
        if not configured:
            logger.info("[candidate %d] STEP_SKIP %s: provider not configured", self.index, stage)
            self._record(stage, StageOutcome.skipped("provider not configured"), "provider not configured")
            return fallback

        self._record(stage, None, "start")
        try:
            value = fn()
        except Exception as exc:  # noqa: BLE001 - optional stages degrade to the pre-stage raster
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("[candidate %d] STEP_SKIP %s: %s", self.index, stage, reason)
            self._record(stage, StageOutcome.skipped(reason), reason)
            return fallback
        logger.info("[candidate %d] STEP_OK %s", self.index, stage)
        self._record(stage, StageOutcome.ok(), "ok")
        return value


class CandidatePipeline:
    """normalize -> [background removal] -> [vectorize] -> pad -> contain-to-trim
    -> finalize (bleed canvas) -> proof overlay, for one candidate.
    """

    def __init__(
        self,
        spec: PhysicalSpec,
        *,
        remove_background: bool = False,
        vectorize: bool = False,
        background_remover: BackgroundRemover | None = None,
        vectorizer: Vectorizer | None = None,
        decoders: Sequence[Decoder] | None = None,
        on_event: Callable[[StageEvent], None] | None = None,
        proof_line_px: int | None = None,
        proof_line_alpha: float | None = None,
    ) -> None:
        self.spec = spec
        self.dims = spec.derive()
        self.remove_background = remove_background
        self.vectorize = vectorize
        self.background_remover = background_remover
        self.vectorizer = vectorizer
        self.decoders = decoders
        self.on_event = on_event
        self.proof_line_px = proof_line_px if proof_line_px is not None else settings.proof_line_px
        self.proof_line_alpha = (
            proof_line_alpha if proof_line_alpha is not None else settings.proof_line_alpha
        )

    def _remove_background(self, raster: RasterBuffer) -> RasterBuffer:
        if self.background_remover is None:
            raise BackgroundRemovalFailed("no background remover configured")
        result = normalize_image(self.background_remover.remove(raster.to_png_bytes()), decoders=self.decoders)
        if isinstance(result, UnverifiedImage):
            raise BackgroundRemovalFailed(f"remover returned undecodable output: {result.reason}")
        return result

    def _vectorize(self, raster: RasterBuffer) -> tuple[RasterBuffer, bytes | None]:
        if self.vectorizer is None:
            raise VectorizationFailed("no vectorizer configured")
        result = self.vectorizer.vectorize(raster.to_png_bytes())
        if not result.vector_bytes:
            raise VectorizationFailed("vectorizer returned no vector data")
        if result.continuation_token is None:
            return raster, result.vector_bytes

        rendition = normalize_image(
            self.vectorizer.download(result.continuation_token, "png"),
            decoders=self.decoders,
        )
        if isinstance(rendition, UnverifiedImage):
            raise VectorizationFailed(f"vector png rendition undecodable: {rendition.reason}")
        return rendition, result.vector_bytes

    def run(self, index: int, data: bytes) -> CandidateResult | CandidateFailure:
        stages = _StageRecorder(index, self.on_event)
        dims = self.dims
        try:
            raster = stages.mandatory(STAGE_NORMALIZE, lambda: decode_raster(data, decoders=self.decoders))

            raster = stages.optional(
                STAGE_BACKGROUND_REMOVAL,
                requested=self.remove_background,
                configured=self.background_remover is not None,
                fn=lambda: self._remove_background(raster),
                fallback=raster,
            )

            pre_vector = raster
            raster, vector = stages.optional(
                STAGE_VECTORIZE,
                requested=self.vectorize,
                configured=self.vectorizer is not None,
                fn=lambda: self._vectorize(pre_vector),
                fallback=(pre_vector, None),
            )

            padded = stages.mandatory(
                STAGE_PAD_MARGIN, lambda: pad_margin(raster, self.spec.margin_fraction)
            )
            trim = stages.mandatory(
                STAGE_RESIZE_TRIM,
                lambda: resize_contain(padded, dims.trim_width, dims.trim_height),
            )
            final = stages.mandatory(STAGE_FINALIZE, lambda: build_bleed_canvas(trim, dims))
            proof = stages.mandatory(
                STAGE_PROOF,
                lambda: render_proof(
                    final,
                    dims.bleed_px,
                    dims.safety_margin_px,
                    line_px=self.proof_line_px,
                    alpha=self.proof_line_alpha,
                ),
            )
        except _CandidateAborted as aborted:
            return CandidateFailure(
                index=index,
                stage=aborted.stage,
                reason=aborted.reason,
                stage_log=tuple(stages.log),
            )

        return CandidateResult(
            index=index,
            raster=final,
            proof=proof,
            stage_log=tuple(stages.log),
            vector=vector,
        )
