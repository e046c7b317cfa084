import os
from io import BytesIO
from unittest.mock import MagicMock

import pytest

# Dummy AWS credentials so boto3 never looks for real ones
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("CATALOG_BACKEND", "memory")

from catalog_service.app.config import Settings
from catalog_service.app.object_store import CloudinaryObjectStore, StoredObject

CLOUD_BASE = "https://res.cloudinary.com/demo"


def create_sample_pdf():
    """Create a minimal PDF for testing"""
    pdf_content = b"""%PDF-1.4
1 0 obj
<<
/Type /Catalog
/Pages 2 0 R
>>
endobj
2 0 obj
<<
/Type /Pages
/Kids [3 0 R]
/Count 1
>>
endobj
3 0 obj
<<
/Type /Page
/Parent 2 0 R
/MediaBox [0 0 612 792]
/Contents 4 0 R
/Resources <<
/Font <<
/F1 5 0 R
>>
>>
>>
endobj
4 0 obj
<<
/Length 44
>>
stream
BT
/F1 12 Tf
100 750 Td
(This is a test PDF document.) Tj
ET
endstream
endobj
5 0 obj
<<
/Type /Font
/Subtype /Type1
/BaseFont /Helvetica
>>
endobj
xref
0 6
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
0000000274 00000 n
0000000368 00000 n
trailer
<<
/Size 6
/Root 1 0 R
>>
startxref
459
%%EOF"""
    return BytesIO(pdf_content)


def fake_upload(content, file_name, classification):
    """Mimics the object store: documents come back on the image delivery path."""
    object_id = f"documents/1700000000000_{file_name}"
    return StoredObject(
        canonical_url=f"{CLOUD_BASE}/image/upload/v1700000000/{object_id}",
        object_id=object_id,
        resource_type=classification.delivery_mode.resource_type,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        log_dir=str(tmp_path / "logs"),
        catalog_backend="memory",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="123456",
        cloudinary_api_secret="shhh",
        cors_origins=("https://documents.example.com",),
    )


@pytest.fixture
def mock_object_store():
    store = MagicMock(spec=CloudinaryObjectStore)
    store.configured = True
    store.upload.side_effect = fake_upload
    store.destroy.return_value = None
    return store


@pytest.fixture
def sample_pdf():
    return create_sample_pdf().getvalue()
