import pytest

from catalog_service.app import classifier
from catalog_service.app.classifier import DeliveryMode, classify_upload, ensure_readable_pdf, format_file_size
from catalog_service.app.config import MAX_FILE_SIZE
from catalog_service.app.exceptions import FileTooLargeError, InvalidPdfError, UnsupportedFileTypeError


@pytest.mark.parametrize("file_name", ["a.pdf", "b.doc", "c.docx", "d.ppt", "e.pptx", "f.txt", "REPORT.PDF", "Notes.TxT"])
def test_accepted_extensions(file_name):
    content_type = "application/pdf" if file_name.lower().endswith(".pdf") else "application/octet-stream"

    result = classify_upload(file_name, content_type, 100)

    assert result.extension == file_name[file_name.rindex("."):].lower()


@pytest.mark.parametrize("file_name", ["setup.exe", "photo.png", "archive.zip", "README", "notes.txt.bak", ""])
def test_rejected_extensions(file_name):
    with pytest.raises(UnsupportedFileTypeError) as exc:
        classify_upload(file_name, "application/octet-stream", 100)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Unsupported file type"


def test_pdf_requires_pdf_content_type():
    with pytest.raises(InvalidPdfError):
        classify_upload("report.pdf", "text/plain", 100)

    with pytest.raises(InvalidPdfError):
        classify_upload("report.pdf", None, 100)


def test_pdf_content_type_parameters_are_ignored():
    result = classify_upload("report.pdf", "Application/PDF; charset=binary", 100)

    assert result.is_pdf
    assert result.delivery_mode is DeliveryMode.RAW_ATTACHMENT


def test_delivery_modes():
    assert classify_upload("notes.txt", "text/plain", 1).delivery_mode is DeliveryMode.GENERIC_RAW
    assert classifier.delivery_mode_for(".png") is DeliveryMode.IMAGE
    assert DeliveryMode.IMAGE.resource_type == "image"
    assert DeliveryMode.RAW_ATTACHMENT.resource_type == "raw"
    assert DeliveryMode.GENERIC_RAW.resource_type == "raw"


def test_size_limit_boundary():
    assert classify_upload("notes.txt", "text/plain", MAX_FILE_SIZE).extension == ".txt"

    with pytest.raises(FileTooLargeError):
        classify_upload("notes.txt", "text/plain", MAX_FILE_SIZE + 1)


def test_size_is_checked_before_type():
    with pytest.raises(FileTooLargeError):
        classify_upload("setup.exe", "application/octet-stream", MAX_FILE_SIZE + 1)


def test_ensure_readable_pdf(sample_pdf):
    ensure_readable_pdf(sample_pdf)

    with pytest.raises(InvalidPdfError):
        ensure_readable_pdf(b"%PDF-1.4 garbage")


@pytest.mark.parametrize("num_bytes, expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (1290000, "1.23 MB"),
    (10 * 1024 * 1024, "10 MB"),
    (3 * 1024 ** 3, "3 GB"),
])
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected
