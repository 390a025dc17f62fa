from __future__ import annotations


class StudyGenerationError(RuntimeError):
    """Base class for failures surfaced by the study materials pipeline."""


class VideoNotFoundError(ValueError):
    pass


class VideoNotReadyError(ValueError):
    pass


class SearchConfigurationError(ValueError):
    """Search capability cannot run at all (missing key, missing index)."""


class UpstreamServiceError(StudyGenerationError):
    """Search or LLM call failed; message carries the upstream reason."""


class ResponseParseError(StudyGenerationError):
    pass


class ContentValidationError(StudyGenerationError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        preview = "; ".join(self.errors[:5])
        more = f" (+{len(self.errors) - 5} more)" if len(self.errors) > 5 else ""
        super().__init__(f"Generated content failed validation: {preview}{more}")


class InsufficientContentError(StudyGenerationError):
    pass


class GenerationTimeoutError(StudyGenerationError, TimeoutError):
    pass
