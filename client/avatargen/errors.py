"""Error taxonomy for the upload-and-handoff pipeline."""
from __future__ import annotations

from typing import Optional


class UploadPipelineError(Exception):
    """Base class for failures surfaced to the user as status text."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(UploadPipelineError):
    """A precondition failed before any storage or network activity."""


class SessionRequiredError(UploadPipelineError):
    """No authenticated session is available to scope the upload."""

    def __init__(self, message: str = "You must be signed in to upload an image.") -> None:
        super().__init__(message)


class StorageError(UploadPipelineError):
    """The object store rejected or failed the upload."""


class BackendError(UploadPipelineError):
    """Transport failure or non-success acknowledgment from the generation backend."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
