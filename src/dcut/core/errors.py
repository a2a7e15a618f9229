"""Error taxonomy for dcut.

Structural errors (configuration, format, internal consistency) abort a
run. Per-segment errors (external jobs, media operations) are captured by
the scheduler and reported, never raised past it.
"""

from __future__ import annotations


class DCutError(Exception):
    """Base class for all dcut errors."""


class ConfigurationError(DCutError):
    """A required directory, catalog or credential is missing."""


class DirectoryNotFoundError(ConfigurationError):
    def __init__(self, directory: object) -> None:
        self.directory = directory
        super().__init__(f"Directory not found: {directory}")


class UnsupportedFormatError(DCutError):
    """The script data matches none of the known shapes."""


class ResolutionError(DCutError):
    """A name could not be matched to any asset."""

    def __init__(self, name: str, suggestions: list | None = None) -> None:
        self.name = name
        self.suggestions = suggestions or []
        message = f"No asset found for: {name}"
        if self.suggestions:
            top = ", ".join(f"{s.name} ({s.score:.0%})" for s in self.suggestions[:3])
            message += f" (did you mean: {top})"
        super().__init__(message)


class TimingError(DCutError):
    """Invalid or out-of-range timing."""


class InternalConsistencyError(DCutError):
    """The composed timeline broke the non-overlap invariant."""


class ExternalJobError(DCutError):
    """A lip-sync job failed, was cancelled, or ran out of polling budget."""

    def __init__(self, reason: str, job_id: str | None = None) -> None:
        self.job_id = job_id
        self.reason = reason
        prefix = f"Job {job_id}: " if job_id else ""
        super().__init__(prefix + reason)


class MediaOperationError(DCutError):
    """An ffmpeg/ffprobe invocation failed."""


class NoContentProducedError(DCutError):
    """Every segment failed; there is nothing to concatenate."""

    def __init__(self, errors: list | None = None) -> None:
        self.errors = errors or []
        super().__init__(f"No segments were produced ({len(self.errors)} failed)")
