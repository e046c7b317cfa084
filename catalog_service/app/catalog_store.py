import threading
import uuid
from abc import ABC, abstractmethod
from functools import reduce
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .exceptions import UpstreamError
from .logger import get_logger
from .query import CatalogQuery, search_text, sort_records
from .schemas import DocumentRecord

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("title", "author", "category", "description")


class CatalogStore(ABC):
    """
    Persistence for document records; backed by DynamoDB or kept in memory.
    """

    @abstractmethod
    def ensure_ready(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def insert(self, record: DocumentRecord) -> DocumentRecord:
        raise NotImplementedError

    @abstractmethod
    def get(self, doc_id: str) -> Optional[DocumentRecord]:
        raise NotImplementedError

    @abstractmethod
    def update(self, doc_id: str, changes: Dict[str, str]) -> Optional[DocumentRecord]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, doc_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def find(self, query: CatalogQuery) -> List[DocumentRecord]:
        raise NotImplementedError

    @abstractmethod
    def distinct_categories(self) -> List[str]:
        raise NotImplementedError


def _check_changes(changes: Dict[str, str]) -> None:
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")


class InMemoryCatalogStore(CatalogStore):
    def __init__(self) -> None:
        self._records: Dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def ensure_ready(self) -> None:
        logger.info("Using in-memory catalog store")

    def insert(self, record: DocumentRecord) -> DocumentRecord:
        saved = record.model_copy(update={"id": uuid.uuid4().hex})
        with self._lock:
            self._records[saved.id] = saved
        return saved

    def get(self, doc_id: str) -> Optional[DocumentRecord]:
        with self._lock:
            return self._records.get(doc_id)

    def update(self, doc_id: str, changes: Dict[str, str]) -> Optional[DocumentRecord]:
        _check_changes(changes)
        with self._lock:
            existing = self._records.get(doc_id)
            if existing is None:
                return None
            updated = existing.model_copy(update=changes)
            self._records[doc_id] = updated
            return updated

    def delete(self, doc_id: str) -> bool:
        with self._lock:
            return self._records.pop(doc_id, None) is not None

    def find(self, query: CatalogQuery) -> List[DocumentRecord]:
        with self._lock:
            records = list(self._records.values())
        return sort_records((r for r in records if query.matches(r)), query)

    def distinct_categories(self) -> List[str]:
        with self._lock:
            return sorted({r.category for r in self._records.values()})


def to_item(record: DocumentRecord) -> Dict[str, Any]:
    item = record.model_dump(mode="json", exclude={"id"})
    item["doc_id"] = record.id
    item["search_text"] = search_text(record.title, record.author, record.description)
    return item


def from_item(item: Dict[str, Any]) -> DocumentRecord:
    data = {k: v for k, v in item.items() if k not in ("doc_id", "search_text")}
    return DocumentRecord(id=item["doc_id"], **data)


class DynamoCatalogStore(CatalogStore):
    def __init__(self, settings: Settings):
        boto3_kwargs = {
            "region_name": settings.aws_region,
            # no automatic retries
            "config": Config(
                connect_timeout=settings.upstream_timeout,
                read_timeout=settings.upstream_timeout,
                retries={"total_max_attempts": 1},
            ),
        }
        if settings.dynamodb_endpoint:
            boto3_kwargs["endpoint_url"] = settings.dynamodb_endpoint
        self.dynamodb = boto3.resource("dynamodb", **boto3_kwargs)
        self.table_name = settings.catalog_table
        self.table = self.dynamodb.Table(self.table_name)

    def _call(self, action: str, fn: Callable, **kwargs) -> Dict[str, Any]:
        try:
            return fn(**kwargs)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Catalog store {action} failed: {str(e)}", exc_info=True)
            raise UpstreamError(f"Catalog store {action} failed") from e

    def ensure_ready(self) -> None:
        client = self.dynamodb.meta.client
        existing = self._call("list_tables", client.list_tables).get("TableNames", [])
        if self.table_name in existing:
            return
        logger.info(f"Creating DynamoDB table: {self.table_name}")
        self._call(
            "create_table",
            client.create_table,
            TableName=self.table_name,
            KeySchema=[{"AttributeName": "doc_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "doc_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        # Wait until table exists
        self._call("wait_table_exists", client.get_waiter("table_exists").wait, TableName=self.table_name)
        logger.info("Table ready.")

    def insert(self, record: DocumentRecord) -> DocumentRecord:
        saved = record.model_copy(update={"id": uuid.uuid4().hex})
        self._call(
            "put_item",
            self.table.put_item,
            Item=to_item(saved),
            ConditionExpression="attribute_not_exists(doc_id)",
        )
        return saved

    def get(self, doc_id: str) -> Optional[DocumentRecord]:
        resp = self._call("get_item", self.table.get_item, Key={"doc_id": doc_id}, ConsistentRead=True)
        item = resp.get("Item")
        return from_item(item) if item else None

    def update(self, doc_id: str, changes: Dict[str, str]) -> Optional[DocumentRecord]:
        _check_changes(changes)
        existing = self.get(doc_id)
        if existing is None:
            return None
        merged = existing.model_copy(update=changes)

        values = dict(changes, search_text=search_text(merged.title, merged.author, merged.description))
        try:
            resp = self.table.update_item(
                Key={"doc_id": doc_id},
                UpdateExpression="SET " + ", ".join(f"#{name} = :{name}" for name in values),
                ExpressionAttributeNames={f"#{name}": name for name in values},
                ExpressionAttributeValues={f":{name}": value for name, value in values.items()},
                ConditionExpression="attribute_exists(doc_id)",
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            # deleted between the read and the write
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            logger.error(f"Catalog store update_item failed: {str(e)}", exc_info=True)
            raise UpstreamError("Catalog store update_item failed") from e
        except BotoCoreError as e:
            logger.error(f"Catalog store update_item failed: {str(e)}", exc_info=True)
            raise UpstreamError("Catalog store update_item failed") from e
        return from_item(resp["Attributes"])

    def delete(self, doc_id: str) -> bool:
        resp = self._call(
            "delete_item",
            self.table.delete_item,
            Key={"doc_id": doc_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in resp

    def _scan(self, **kwargs) -> List[Dict[str, Any]]:
        items = []
        while True:
            resp = self._call("scan", self.table.scan, **kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def find(self, query: CatalogQuery) -> List[DocumentRecord]:
        conditions = []
        if query.category:
            conditions.append(Attr("category").eq(query.category))
        if query.search:
            conditions.append(Attr("search_text").contains(query.search.lower()))

        scan_kwargs = {}
        if conditions:
            scan_kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)
        return sort_records((from_item(item) for item in self._scan(**scan_kwargs)), query)

    def distinct_categories(self) -> List[str]:
        items = self._scan(ProjectionExpression="#category", ExpressionAttributeNames={"#category": "category"})
        return sorted({item["category"] for item in items if item.get("category")})


def build_catalog_store(settings: Settings) -> CatalogStore:
    if settings.catalog_backend == "memory":
        return InMemoryCatalogStore()
    return DynamoCatalogStore(settings)
