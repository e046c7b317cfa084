from datetime import datetime, timedelta, timezone

from catalog_service.app.query import CatalogQuery, build_query, sort_records
from catalog_service.app.schemas import DocumentRecord


def make_record(title, author="", description="", category="C", minutes=0):
    return DocumentRecord(
        id=title,
        title=title,
        author=author,
        category=category,
        description=description,
        file_name="f.txt",
        file_extension=".txt",
        file_size_display="1 Bytes",
        canonical_url="https://example.com/f.txt",
        preview_url="https://example.com/f.txt",
        download_url="https://example.com/f.txt",
        storage_object_id="documents/f.txt",
        upload_time=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def test_defaults():
    assert build_query() == CatalogQuery(search=None, category=None, sort_field="upload_time", descending=True)


def test_blank_parameters_are_ignored():
    assert build_query(search="  ", category="", sort="") == build_query()


def test_sort_parsing():
    assert build_query(sort="title:asc") == CatalogQuery(sort_field="title", descending=False)
    assert build_query(sort="title:ASC").descending is False
    assert build_query(sort="title").descending is True
    assert build_query(sort="title:sideways").descending is True
    assert build_query(sort="fileName:asc").sort_field == "file_name"


def test_unknown_sort_field_falls_back_to_upload_time():
    query = build_query(sort="password:asc")

    assert query.sort_field == "upload_time"
    assert query.descending is False


def test_search_matches_title_author_description_case_insensitively():
    query = build_query(search="ALICE")

    assert query.matches(make_record("Alice in Wonderland"))
    assert query.matches(make_record("X", author="alice b."))
    assert query.matches(make_record("X", description="for malice"))
    assert not query.matches(make_record("Bob", author="Carol", description="nothing"))


def test_category_is_exact_and_combines_with_search():
    query = build_query(search="alice", category="Science")

    assert query.matches(make_record("Alice", category="Science"))
    assert not query.matches(make_record("Alice", category="science"))
    assert not query.matches(make_record("Bob", category="Science"))


def test_category_is_not_trimmed():
    query = build_query(category="Science ")

    assert query.category == "Science "
    assert not query.matches(make_record("Alice", category="Science"))


def test_sort_records():
    records = [make_record("b", minutes=1), make_record("A", minutes=2), make_record("c", minutes=0)]

    assert [r.title for r in sort_records(records, build_query())] == ["A", "b", "c"]
    assert [r.title for r in sort_records(records, build_query(sort="uploadTime:asc"))] == ["c", "b", "A"]
    assert [r.title for r in sort_records(records, build_query(sort="title:asc"))] == ["A", "b", "c"]
