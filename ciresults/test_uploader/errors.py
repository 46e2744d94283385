"""Errors raised by the upload pipeline.

Every failure aborts the run. The CLI is the only place these are caught; it
prints ``Error (<stage>): <cause>`` and exits non-zero.
"""

from collections.abc import Sequence


class UploadError(Exception):
    """Base class for all upload failures."""

    stage = "upload"


class ConfigurationError(UploadError):
    """A required setting is missing or invalid."""

    stage = "configuration"


class InputError(UploadError):
    """The input file cannot be opened or read."""

    stage = "input"


class DecodeError(UploadError):
    """A unit of the input stream is not a valid test record."""

    stage = "decode"

    def __init__(self, message: str, *, line_number: int, raw: bytes) -> None:
        """Record where decoding stopped and the offending input."""
        self.line_number = line_number
        self.raw = raw
        super().__init__(f"line {line_number}: {message}")


class StorageError(UploadError):
    """The object store is unreachable or refused the staging object."""

    stage = "storage"


class WriteError(UploadError):
    """A record could not be written to the staging sink."""

    stage = "write"


class SubmissionError(UploadError):
    """The warehouse did not accept the load job."""

    stage = "submission"


class LoadError(UploadError):
    """The load job was accepted but did not complete successfully."""

    stage = "load"

    def __init__(
        self, message: str, *, errors: Sequence[object] = (), job_id: str | None = None
    ) -> None:
        """Keep the job's reported errors for logging."""
        self.errors = list(errors)
        self.job_id = job_id
        super().__init__(message)
