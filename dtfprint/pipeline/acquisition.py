from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from dtfprint.config import settings
from dtfprint.errors import InsufficientCandidates, InvalidDimensions, NoCandidates
from dtfprint.providers.base import ImageGenerator

logger = logging.getLogger(__name__)


class AcquisitionStatus(str, enum.Enum):
    REQUESTING = "requesting"
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass(slots=True, frozen=True)
class AcquisitionState:
    target: int
    accumulated: tuple[bytes, ...] = field(default_factory=tuple)
    attempts: int = 0

    @property
    def remaining(self) -> int:
        return self.target - len(self.accumulated)

    def status(self, attempt_cap: int) -> AcquisitionStatus:
        if self.remaining <= 0:
            return AcquisitionStatus.DONE
        if self.attempts >= attempt_cap:
            return AcquisitionStatus.EXHAUSTED
        return AcquisitionStatus.REQUESTING


class BatchAcquisition:
    """Collect ``target`` base images from a generator that may under-deliver.

    Each attempt asks for exactly the remaining count. The loop stops once the
    target is met or ``attempt_cap`` attempts have been made; attempts that
    yield nothing are followed by a fixed backoff before the next one.
    """

    def __init__(
        self,
        generator: ImageGenerator,
        *,
        attempt_cap: int | None = None,
        backoff_seconds: float | None = None,
        size_hint: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._generator = generator
        self._attempt_cap = attempt_cap if attempt_cap is not None else settings.acquisition_attempt_cap
        self._backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.acquisition_backoff_seconds
        )
        self._size_hint = size_hint or settings.generator_size_hint
        self._sleep = sleep
        if self._attempt_cap < 1:
            raise ValueError(f"attempt_cap must be >= 1, got {self._attempt_cap}")

    def attempt(self, state: AcquisitionState, prompt: str) -> AcquisitionState:
        requested = state.remaining
        try:
            items = self._generator.generate(prompt, requested, self._size_hint)
        except Exception as exc:  # noqa: BLE001 - provider failure counts as an empty attempt
            logger.warning("generation attempt %d failed: %s", state.attempts + 1, exc)
            items = []

        usable = [item for item in items if item][:requested]
        logger.info(
            "generation attempt %d: requested=%d received=%d",
            state.attempts + 1,
            requested,
            len(usable),
        )
        return AcquisitionState(
            target=state.target,
            accumulated=state.accumulated + tuple(usable),
            attempts=state.attempts + 1,
        )

    def run(self, prompt: str, target: int) -> list[bytes]:
        if target < 1:
            raise InvalidDimensions(f"target must be >= 1, got {target}")

        state = AcquisitionState(target=target)
        while state.status(self._attempt_cap) is AcquisitionStatus.REQUESTING:
            before = len(state.accumulated)
            state = self.attempt(state, prompt)
            if (
                len(state.accumulated) == before
                and state.status(self._attempt_cap) is AcquisitionStatus.REQUESTING
            ):
                self._sleep(self._backoff_seconds)

        if state.status(self._attempt_cap) is AcquisitionStatus.DONE:
            return list(state.accumulated)

        collected = len(state.accumulated)
        if collected == 0:
            raise NoCandidates(
                f"no images generated after {state.attempts} attempts",
                collected=0,
                target=target,
                attempts=state.attempts,
            )
        raise InsufficientCandidates(
            f"only {collected}/{target} images generated after {state.attempts} attempts",
            collected=collected,
            target=target,
            attempts=state.attempts,
        )
