from __future__ import annotations


class PaperMirrorError(RuntimeError):
    """Base class for errors raised by the style-transfer pipeline."""


class ServiceResponseError(PaperMirrorError):
    """Raised when a service reply cannot be parsed into the expected shape."""

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ServiceTransportError(PaperMirrorError):
    """Raised when the generation service could not be reached or timed out."""


class EmptyDocumentError(PaperMirrorError, ValueError):
    """Raised when the draft has no content to rewrite."""
