"""Domain exceptions for synthesis, model registry, and CLI diagnostics."""

from __future__ import annotations


class MoravoiceError(RuntimeError):
    """Base class for all errors raised by the synthesis core."""

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize an error with a human-readable detail and optional hint."""

        super().__init__(detail)
        self.detail = detail
        self.hint = hint


class ModelConflictError(MoravoiceError):
    """Raised when a model or one of its styles is already claimed by a loaded model."""


class ModelNotFoundError(MoravoiceError):
    """Raised when a referenced voice model is not currently loaded."""


class StyleNotFoundError(MoravoiceError):
    """Raised when no loaded voice model provides the requested style id."""

    def __init__(self, style_id: int) -> None:
        super().__init__(
            f"Style `{style_id}` is not provided by any loaded voice model.",
            hint="Load a voice model that declares this style before synthesizing.",
        )
        self.style_id = style_id


class IncompleteQueryError(MoravoiceError):
    """Raised when an audio query is malformed or carries out-of-range values."""


class InvalidModelError(MoravoiceError):
    """Raised when a voice model or model bundle is malformed."""


class GpuSupportError(MoravoiceError):
    """Raised when accelerator execution is demanded but no accelerator exists."""


class KanaParseError(MoravoiceError):
    """Raised when kana notation text cannot be parsed into accent phrases."""


class UserDictError(MoravoiceError):
    """Raised for invalid user dictionary words, lookups, or files."""


class TextAnalysisError(MoravoiceError):
    """Raised when a text analyzer cannot map input text to accent phrases."""


class PipelineStageError(RuntimeError):
    """Raised when a specific CLI-driven stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
