"""Exception types shared by the server pipeline and the client."""

from __future__ import annotations


class TruthLensError(RuntimeError):
    """Base class for TruthLens failures."""


class ValidationError(TruthLensError):
    """Raised when the submitted text is absent or too short to analyse."""


class UpstreamError(TruthLensError):
    """Raised when the LLM or search collaborator fails or times out."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class DecodeError(TruthLensError):
    """Raised when a streamed response body cannot be decoded as UTF-8."""


__all__ = ["DecodeError", "TruthLensError", "UpstreamError", "ValidationError"]
