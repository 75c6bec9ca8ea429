"""
Error taxonomy for the export pipeline.

Every error is caught at the narrowest scope that can still produce a
meaningful statistic; nothing here is expected to escape the batch run.
"""
from typing import List, Optional


class ExportError(Exception):
    """Base class for all export pipeline errors."""


class ValidationError(ExportError):
    """Bad input (entity id, configuration). Raised before any I/O."""


class EntityNotFoundError(ExportError):
    """Entity is absent from the entity store. Terminal for that entity."""


class LocalFileNotFoundError(ExportError):
    """Image file is missing on disk. Recorded as ``not_found``."""

    def __init__(self, path):
        super().__init__(f"File not found on disk: {path}")
        self.path = path


class FileReadError(ExportError):
    """Image file exists but could not be read."""


class UploadError(ExportError):
    """Asset store rejected the upload or could not be reached."""

    def __init__(self, message: str, messages: Optional[List[str]] = None):
        super().__init__(message)
        self.messages = messages or [message]


class NoLocatorReturnedError(UploadError):
    """Asset store reported success without an original or preview URL."""


class PersistenceError(ExportError):
    """Remote references could not be written back to the entity store."""


class BatchGroupError(ExportError):
    """A whole group failed inside the batch machinery."""


class APIStatusError(ExportError):
    """HTTP API answered with a 4xx/5xx status."""

    def __init__(self, status_code: int, method: str, endpoint: str, detail=None):
        super().__init__(f"API error {status_code} on {method} {endpoint}: {detail}")
        self.status_code = status_code
        self.detail = detail
