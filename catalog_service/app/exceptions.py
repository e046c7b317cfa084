from fastapi import HTTPException
from typing import Any, Dict, Optional


class CatalogException(HTTPException):
    """Base exception for document catalog errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or f"CATALOG_{status_code}"


class ValidationError(CatalogException):
    """Rejected input: missing fields, bad file type, oversized file"""

    def __init__(self, detail: str = "Invalid input data", error_code: str = "VALIDATION_ERROR"):
        super().__init__(status_code=400, detail=detail, error_code=error_code)


class UnsupportedFileTypeError(ValidationError):

    def __init__(self, detail: str = "Unsupported file type"):
        super().__init__(detail=detail, error_code="UNSUPPORTED_FILE_TYPE")


class InvalidPdfError(ValidationError):

    def __init__(self, detail: str = "Invalid PDF file"):
        super().__init__(detail=detail, error_code="INVALID_PDF")


class FileTooLargeError(ValidationError):

    def __init__(self, detail: str = "File exceeds the 10 MB limit"):
        super().__init__(detail=detail, error_code="FILE_TOO_LARGE")


class DocumentNotFoundError(CatalogException):

    def __init__(self, doc_id: str):
        super().__init__(status_code=404, detail="Document not found", error_code="DOCUMENT_NOT_FOUND")
        self.doc_id = doc_id


class UpstreamError(CatalogException):
    """
    The catalog store or the object store failed.

    The client only ever sees a generic message; ``reason`` is logged.
    """

    def __init__(self, reason: str, detail: str = "Internal server error", error_code: str = "UPSTREAM_ERROR"):
        super().__init__(status_code=500, detail=detail, error_code=error_code)
        self.reason = reason


class StorageNotConfiguredError(UpstreamError):

    def __init__(self):
        super().__init__(
            reason="Object store credentials are missing",
            detail="Storage not configured",
            error_code="STORAGE_NOT_CONFIGURED",
        )
