"""Error taxonomy for the recipe generation pipeline.

- TransportError: HTTP/network failure or malformed envelope from a backend.
- GenerationError: unusable chat response or total JSON recovery failure.
- ValidationError: reconciled recipe fails the strict schema.
- ImageGenerationError: every image tier failed (non-fatal to a recipe).
- ParseFailure: one JSON recovery strategy failed (internal to the cascade).
- PipelineCancelledError: the caller's cancellation token fired.
"""

from typing import Optional


class RecipePipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class TransportError(RecipePipelineError):
    """Network or HTTP failure talking to an inference backend."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (status={self.status})"
        return base


class GenerationError(RecipePipelineError):
    """Recipe generation produced nothing usable."""


class ValidationError(RecipePipelineError):
    """Reconciled recipe data failed schema validation.

    Attributes:
        errors: List of (field_path, reason) pairs.
    """

    def __init__(self, errors: list[tuple[str, str]]) -> None:
        self.errors = errors
        lines = "\n".join(f"Field '{path}' {reason}" for path, reason in errors)
        super().__init__(f"Recipe validation failed:\n{lines}" if lines else "Recipe validation failed")


class ImageGenerationError(RecipePipelineError):
    """All image prompt and generation tiers were exhausted."""


class ParseFailure(RecipePipelineError):
    """A single JSON recovery strategy could not produce an object."""


class PipelineCancelledError(RecipePipelineError):
    """The operation was cancelled through its CancellationToken."""
