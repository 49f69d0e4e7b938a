"""Pipeline exception types."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import IngestionCursor


class PipelineError(Exception):
    """Base class for errors the pipeline reports to its caller."""


class ConfigurationError(PipelineError):
    """Raised when a required setting (API key, app id) is missing."""


class IngestionError(PipelineError):
    """Raised when a page of the catalog could not be embedded or upserted.

    The cursor that failed is attached so the caller can retry the same
    slice; upserts are keyed by id, so repeating it is safe.
    """

    def __init__(self, message: str, cursor: Optional["IngestionCursor"] = None):
        super().__init__(message)
        self.cursor = cursor
