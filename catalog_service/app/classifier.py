import os
from enum import Enum
from typing import NamedTuple, Optional

import fitz  # PyMuPDF

from .config import MAX_FILE_SIZE
from .exceptions import FileTooLargeError, InvalidPdfError, UnsupportedFileTypeError

PDF_EXTENSION = ".pdf"
PDF_MEDIA_TYPE = "application/pdf"

ACCEPTED_EXTENSIONS = (".pdf", ".doc", ".docx", ".ppt", ".pptx", ".txt")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


class DeliveryMode(str, Enum):
    RAW_ATTACHMENT = "raw-attachment"
    IMAGE = "image"
    GENERIC_RAW = "generic-raw"

    @property
    def resource_type(self) -> str:
        """Object store resource type the bytes are uploaded under."""
        return "image" if self is DeliveryMode.IMAGE else "raw"


class Classification(NamedTuple):
    extension: str
    delivery_mode: DeliveryMode

    @property
    def is_pdf(self) -> bool:
        return self.extension == PDF_EXTENSION


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or "")[1].lower()


def delivery_mode_for(extension: str) -> DeliveryMode:
    extension = extension.lower()
    if extension == PDF_EXTENSION:
        return DeliveryMode.RAW_ATTACHMENT
    if extension in IMAGE_EXTENSIONS:
        return DeliveryMode.IMAGE
    return DeliveryMode.GENERIC_RAW


def _media_type(content_type: Optional[str]) -> str:
    # "application/pdf; charset=binary" -> "application/pdf"
    return (content_type or "").split(";")[0].strip().lower()


def check_file_size(size: int, limit: int = MAX_FILE_SIZE) -> None:
    if size > limit:
        raise FileTooLargeError()


def classify_upload(file_name: str, content_type: Optional[str], size: int) -> Classification:
    """
    Decide whether an uploaded file is accepted and how it is delivered.

    The size ceiling is checked first so oversized payloads never reach
    the object store. PDFs must also declare the PDF media type.
    """
    check_file_size(size)

    extension = file_extension(file_name)
    if extension not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFileTypeError()

    if extension == PDF_EXTENSION and _media_type(content_type) != PDF_MEDIA_TYPE:
        raise InvalidPdfError()

    return Classification(extension=extension, delivery_mode=delivery_mode_for(extension))


def ensure_readable_pdf(content: bytes) -> None:
    try:
        doc = fitz.open(stream=content, filetype="pdf")
        try:
            page_count = doc.page_count
        finally:
            doc.close()
    except Exception as e:
        raise InvalidPdfError() from e
    if page_count < 1:
        raise InvalidPdfError()


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    # 1.50 -> "1.5", 2.00 -> "2"
    return f"{round(value, 2):g} {SIZE_UNITS[unit]}"
