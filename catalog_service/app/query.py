from typing import Iterable, List, NamedTuple, Optional

from .schemas import DocumentRecord

DEFAULT_SORT = "uploadTime:desc"

# public (camelCase) sort field -> record attribute
SORT_FIELDS = {
    "uploadTime": "upload_time",
    "title": "title",
    "author": "author",
    "category": "category",
    "fileName": "file_name",
    "fileSizeDisplay": "file_size_display",
}
SEARCH_FIELDS = ("title", "author", "description")


class CatalogQuery(NamedTuple):
    search: Optional[str] = None
    category: Optional[str] = None
    sort_field: str = "upload_time"
    descending: bool = True

    def matches(self, record: DocumentRecord) -> bool:
        if self.category and record.category != self.category:
            return False
        if self.search:
            return self.search.lower() in search_text(record.title, record.author, record.description)
        return True


def search_text(*values: Optional[str]) -> str:
    """Lower-cased text the free-text search is matched against."""
    return "\n".join((v or "").lower() for v in values)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_query(search: Optional[str] = None, category: Optional[str] = None, sort: Optional[str] = None) -> CatalogQuery:
    field, _, direction = (_clean(sort) or DEFAULT_SORT).partition(":")
    return CatalogQuery(
        search=_clean(search),
        category=category or None,
        sort_field=SORT_FIELDS.get(field.strip(), SORT_FIELDS["uploadTime"]),
        descending=direction.strip().lower() != "asc",
    )


def sort_records(records: Iterable[DocumentRecord], query: CatalogQuery) -> List[DocumentRecord]:
    def key(record: DocumentRecord):
        value = getattr(record, query.sort_field)
        return value.lower() if isinstance(value, str) else value

    return sorted(records, key=key, reverse=query.descending)
