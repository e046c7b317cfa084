from datetime import datetime, timezone
from typing import Optional

from .classifier import Classification, format_file_size
from .exceptions import ValidationError
from .object_store import StoredObject
from .schemas import DEFAULT_AUTHOR, DocumentFields, DocumentRecord
from .urls import derive_urls


def _required(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def validate_fields(fields: DocumentFields) -> DocumentFields:
    """Check and normalise upload metadata; runs before any bytes leave the process."""
    return DocumentFields(
        title=_required(fields.title, "title"),
        author=(fields.author or "").strip() or DEFAULT_AUTHOR,
        category=_required(fields.category, "category"),
        description=(fields.description or "").strip(),
    )


def assemble_record(
    fields: DocumentFields,
    classification: Classification,
    stored: StoredObject,
    file_name: str,
    size: int,
) -> DocumentRecord:
    urls = derive_urls(stored.canonical_url, classification.extension)
    return DocumentRecord(
        title=fields.title,
        author=fields.author,
        category=fields.category,
        description=fields.description,
        file_name=file_name,
        file_extension=classification.extension,
        file_size_display=format_file_size(size),
        canonical_url=stored.canonical_url,
        preview_url=urls.preview,
        download_url=urls.download,
        storage_object_id=stored.object_id,
        upload_time=datetime.now(timezone.utc),
    )
