from __future__ import annotations


class DtfPrintError(RuntimeError):
    pass


class InvalidDimensions(DtfPrintError, ValueError):
    """Zero or negative geometry input. Caller error, never retried."""


class DecodeFailure(DtfPrintError):
    """Bytes could not be interpreted as an image by any decoder."""


class AcquisitionError(DtfPrintError):
    def __init__(self, message: str, *, collected: int, target: int, attempts: int) -> None:
        super().__init__(message)
        self.collected = collected
        self.target = target
        self.attempts = attempts


class InsufficientCandidates(AcquisitionError):
    """Attempts exhausted with some, but fewer than requested, images collected."""


class NoCandidates(AcquisitionError):
    """Attempts exhausted without a single usable image."""


class NoUsableCandidates(DtfPrintError):
    """Every candidate failed a mandatory pipeline stage."""

    def __init__(self, message: str, *, failures: list | None = None) -> None:
        super().__init__(message)
        self.failures = list(failures or [])


class OptionalStageFailed(DtfPrintError):
    pass


class BackgroundRemovalFailed(OptionalStageFailed):
    pass


class VectorizationFailed(OptionalStageFailed):
    pass


class ProviderError(DtfPrintError):
    """A provider answered with an explicit error payload."""
