from enum import Enum
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from . import classifier, records
from .catalog_store import CatalogStore
from .exceptions import DocumentNotFoundError, StorageNotConfiguredError, ValidationError
from .logger import get_logger
from .object_store import CloudinaryObjectStore
from .query import CatalogQuery
from .schemas import DocumentFields, DocumentRecord, DocumentUpdate

logger = get_logger(__name__)


class DeleteState(str, Enum):
    REQUESTED = "requested"
    OBJECT_STORE_DELETE_PENDING = "object_store_delete_pending"
    CATALOG_DELETE_PENDING = "catalog_delete_pending"
    DONE = "done"
    NOT_FOUND = "not_found"


class DocumentService:
    """
    Upload pipeline and catalog operations.

    Blocking calls to the catalog store and the object store run in the
    threadpool and are awaited before the request completes.
    """

    def __init__(self, catalog: CatalogStore, object_store: CloudinaryObjectStore, max_file_size: int):
        self.catalog = catalog
        self.object_store = object_store
        self.max_file_size = max_file_size

    async def create(self, fields: DocumentFields, file_name: Optional[str], content_type: Optional[str], content: Optional[bytes]) -> DocumentRecord:
        # metadata first, bytes second, record third
        if not file_name or content is None:
            raise ValidationError("file is required")
        fields = records.validate_fields(fields)

        size = len(content)
        classifier.check_file_size(size, self.max_file_size)
        classification = classifier.classify_upload(file_name, content_type, size)
        if classification.is_pdf:
            classifier.ensure_readable_pdf(content)

        if not self.object_store.configured:
            raise StorageNotConfiguredError()

        stored = await run_in_threadpool(self.object_store.upload, content, file_name, classification)
        record = records.assemble_record(fields, classification, stored, file_name, size)
        saved = await run_in_threadpool(self.catalog.insert, record)
        logger.info(f"Created document {saved.id} ({file_name}, {saved.file_size_display})")
        return saved

    async def get(self, doc_id: str) -> DocumentRecord:
        record = await run_in_threadpool(self.catalog.get, doc_id)
        if record is None:
            raise DocumentNotFoundError(doc_id)
        return record

    async def list(self, query: CatalogQuery) -> List[DocumentRecord]:
        return await run_in_threadpool(self.catalog.find, query)

    async def categories(self) -> List[str]:
        return await run_in_threadpool(self.catalog.distinct_categories)

    async def update(self, doc_id: str, update: DocumentUpdate) -> DocumentRecord:
        changes = update.changes()
        if not changes:
            raise ValidationError("No updatable fields provided")
        record = await run_in_threadpool(self.catalog.update, doc_id, changes)
        if record is None:
            raise DocumentNotFoundError(doc_id)
        logger.info(f"Updated document {doc_id}: {sorted(changes)}")
        return record

    async def delete(self, doc_id: str) -> DeleteState:
        """
        Remove the stored bytes, then the catalog row.

        If the object store delete fails the row is kept, so metadata never
        disappears while its bytes may still exist.
        """
        logger.info(f"Delete {doc_id}: {DeleteState.REQUESTED.value}")
        record = await run_in_threadpool(self.catalog.get, doc_id)
        if record is None:
            logger.info(f"Delete {doc_id}: {DeleteState.NOT_FOUND.value}")
            raise DocumentNotFoundError(doc_id)

        logger.info(f"Delete {doc_id}: {DeleteState.OBJECT_STORE_DELETE_PENDING.value}")
        resource_type = classifier.delivery_mode_for(record.file_extension).resource_type
        await run_in_threadpool(self.object_store.destroy, record.storage_object_id, resource_type)

        logger.info(f"Delete {doc_id}: {DeleteState.CATALOG_DELETE_PENDING.value}")
        removed = await run_in_threadpool(self.catalog.delete, doc_id)
        if not removed:
            logger.warning(f"Document {doc_id} was already gone from the catalog after its bytes were deleted")

        logger.info(f"Delete {doc_id}: {DeleteState.DONE.value}")
        return DeleteState.DONE
