"""
Exception Hierarchy for the DocQA Backend

Domain errors raised by the retrieval pipeline and its collaborators. The API
layer maps each class onto an HTTP status code.
"""

from typing import Any, Dict, Optional


class DocQAError(Exception):
    """Base exception for all DocQA errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DocQAError):
    """Raised when settings select an unknown or unusable component."""


class InvalidInput(DocQAError):
    """Raised when a question, fan-out or URL fails validation."""

    def __init__(self, message: str, field: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details)


class UnsupportedFileType(InvalidInput):
    """Raised when an uploaded file is not PDF, plain text or CSV."""


class EmptyInput(DocQAError):
    """Raised when ingestion receives no chunks or no extractable content."""


class DocumentLoadError(DocQAError):
    """Raised when a remote document cannot be fetched or parsed."""


class StoreUnavailable(DocQAError):
    """Raised when the chunk store is not initialized or its backing call fails."""


class ModelError(DocQAError):
    """Base class for language model failures that trigger the fallback path."""


class ModelUnavailable(ModelError):
    """Raised when the language model is not configured or the call fails."""


class ModelTimeout(ModelError):
    """Raised when the language model does not answer within the timeout."""
