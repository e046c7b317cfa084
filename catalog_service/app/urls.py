from typing import Dict
from urllib.parse import quote

from .classifier import PDF_EXTENSION, PDF_MEDIA_TYPE
from .schemas import DocumentRecord, DocumentUrls

# Image assets are served through a transformable path; documents must use raw passthrough.
PROCESSED_UPLOAD_SEGMENT = "/image/upload/"
RAW_UPLOAD_SEGMENT = "/raw/upload/"
ATTACHMENT_QUERY = "attachment=true"


def to_raw_url(canonical_url: str) -> str:
    return canonical_url.replace(PROCESSED_UPLOAD_SEGMENT, RAW_UPLOAD_SEGMENT, 1)


def with_attachment_flag(url: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{ATTACHMENT_QUERY}"


def derive_urls(canonical_url: str, extension: str) -> DocumentUrls:
    """
    Derive the inline preview URL and the forced download URL of a stored object.

    Only PDFs are rewritten. The object store's attachment flag is fixed at
    upload time, so the download variant carries an explicit query flag and
    the preview variant relies on the headers set by the preview endpoint.
    """
    if extension.lower() != PDF_EXTENSION:
        return DocumentUrls(preview=canonical_url, download=canonical_url, original=canonical_url)

    raw_url = to_raw_url(canonical_url)
    return DocumentUrls(preview=raw_url, download=with_attachment_flag(raw_url), original=canonical_url)


def content_disposition(disposition: str, file_name: str) -> str:
    # Header values must be latin-1; non-ASCII names also get an RFC 5987 filename*
    safe_name = file_name.replace('"', "").replace("\\", "")
    try:
        safe_name.encode("ascii")
    except UnicodeEncodeError:
        fallback = safe_name.encode("ascii", "replace").decode("ascii")
        return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(safe_name)}"
    return f'{disposition}; filename="{safe_name}"'


def preview_headers(record: DocumentRecord) -> Dict[str, str]:
    if record.file_extension != PDF_EXTENSION:
        return {}
    return {
        "Content-Type": PDF_MEDIA_TYPE,
        "Content-Disposition": content_disposition("inline", record.file_name),
    }


def download_headers(record: DocumentRecord) -> Dict[str, str]:
    return {"Content-Disposition": content_disposition("attachment", record.file_name)}


def document_urls(record: DocumentRecord) -> DocumentUrls:
    return DocumentUrls(preview=record.preview_url, download=record.download_url, original=record.canonical_url)
