"""
Ingestion error taxonomy.

Every error carries the HTTP status it maps to; the API layer renders
``{"message": ...}`` from it. Nothing in the pipeline retries.
"""


class IngestionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IngestionError):
    """Upload missing or of the wrong declared content type."""
    status_code = 400


class DuplicateError(IngestionError):
    """A fully processed document with the same name already exists."""
    status_code = 400

    def __init__(self, message: str = "File already exists"):
        super().__init__(message)


class ExtractionError(IngestionError):
    """The model call failed, timed out or is not configured."""
    status_code = 500


class NormalizationError(IngestionError):
    status_code = 500


class NotFoundError(IngestionError):
    status_code = 404


class PersistenceError(IngestionError):
    """A record write failed or a record failed its field checks."""
    status_code = 500
