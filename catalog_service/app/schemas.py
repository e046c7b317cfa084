from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_AUTHOR = "Không rõ tác giả"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentUrls(BaseModel):
    preview: str
    download: str
    original: str


class DocumentRecord(CamelModel):
    id: Optional[str] = None
    title: str
    author: str = DEFAULT_AUTHOR
    category: str
    description: str = ""
    file_name: str
    file_extension: str
    file_size_display: str
    canonical_url: str
    preview_url: str
    download_url: str
    storage_object_id: str
    upload_time: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentDetail(DocumentRecord):
    urls: DocumentUrls


class DocumentFields(BaseModel):
    """User-supplied metadata accompanying an upload."""

    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "category")
    def validate_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v.strip() if v is not None else v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class SupportedTypesResponse(CamelModel):
    supported_types: list[str]
    max_file_size: int


class MessageResponse(BaseModel):
    message: str
    id: str


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[dict] = None
