"""Shared motor plumbing for MongoDB-backed identity stores.

One primary collection is mapped to an entity (``to_document`` /
``from_document``); the other collections a store owns (settings, audit
log, sessions, dependent data) are reached by name through the same
helpers.

Driver failures become ConnectivityError, except DuplicateKeyError which
is passed through so the store can translate it into a conflict.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import DuplicateKeyError, PyMongoError

from domain.identity.core.exceptions.identity_errors import ConnectivityError
from infrastructure.config import (
    get_mongodb_database,
    get_mongodb_timeout_ms,
    get_mongodb_uri,
)

TEntity = TypeVar("TEntity")

Document = Dict[str, Any]

logger = logging.getLogger(__name__)


class MongoBaseRepository(ABC, Generic[TEntity]):
    """Base class for stores built on one motor client.

    Subclasses provide ``collection_name`` and the two mapping functions.
    Every helper takes an optional ``collection`` name; None means the
    primary collection.
    """

    def __init__(self, client: Optional[AsyncIOMotorClient[Document]] = None):
        """
        Args:
            client: Existing motor client; built from MONGODB_URI when None

        Raises:
            ValueError: No client given and MONGODB_URI not set
        """
        if client is None:
            uri = get_mongodb_uri()
            if not uri:
                raise ValueError(
                    "MONGODB_URI not configured. "
                    "Set MONGODB_URI (and MONGODB_USER / MONGODB_PASSWORD if it "
                    "references them) or use IDENTITY_BACKEND=inmemory."
                )
            client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=get_mongodb_timeout_ms())

        self._client: AsyncIOMotorClient[Document] = client
        self._db: AsyncIOMotorDatabase[Document] = client[get_mongodb_database()]
        self._collection = self._db[self.collection_name]

        logger.info(
            "Mongo store created",
            extra={"store": type(self).__name__, "database": self._db.name},
        )

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Primary collection."""

    @abstractmethod
    def to_document(self, entity: TEntity) -> Document:
        pass

    @abstractmethod
    def from_document(self, doc: Document) -> TEntity:
        pass

    @property
    def collection(self) -> AsyncIOMotorCollection[Document]:
        return self._collection

    def _resolve(self, collection: Optional[str]) -> AsyncIOMotorCollection[Document]:
        return self._collection if collection is None else self._db[collection]

    # Timestamps are stored as UTC ISO strings.

    @staticmethod
    def datetime_to_iso(dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        if dt.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")
        return dt.astimezone(timezone.utc).isoformat()

    @staticmethod
    def iso_to_datetime(iso_str: Optional[str]) -> Optional[datetime]:
        """Parse a stored timestamp; naive values are read as UTC."""
        if iso_str is None:
            return None
        dt = datetime.fromisoformat(iso_str)
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)

    def _failure(
        self, operation: str, collection: Optional[str], error: Exception
    ) -> ConnectivityError:
        logger.error(
            "MongoDB operation failed",
            extra={
                "operation": operation,
                "collection": collection or self.collection_name,
                "error": str(error),
            },
        )
        return ConnectivityError(f"MongoDB {operation} failed: {error}")

    async def _find_one(
        self,
        filter_dict: Document,
        projection: Optional[Dict[str, int]] = None,
        collection: Optional[str] = None,
    ) -> Optional[Document]:
        try:
            return await self._resolve(collection).find_one(filter_dict, projection)
        except PyMongoError as e:
            raise self._failure("find_one", collection, e) from e

    async def _find_many(
        self,
        filter_dict: Document,
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
        collection: Optional[str] = None,
    ) -> List[Document]:
        """Matching documents, optionally sorted and capped at ``limit``."""
        try:
            cursor = self._resolve(collection).find(filter_dict)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            documents: List[Document] = await cursor.to_list(length=limit)
            return documents
        except PyMongoError as e:
            raise self._failure("find", collection, e) from e

    async def _insert_one(self, document: Document, collection: Optional[str] = None) -> None:
        """
        Raises:
            DuplicateKeyError: Unique index violation
            ConnectivityError: Any other driver failure
        """
        try:
            await self._resolve(collection).insert_one(document)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise self._failure("insert_one", collection, e) from e

    async def _update_one(
        self,
        filter_dict: Document,
        update_dict: Document,
        upsert: bool = False,
        collection: Optional[str] = None,
    ) -> int:
        """Apply ``update_dict`` to the first match; returns the matched count.

        Raises:
            DuplicateKeyError: Unique index violation
            ConnectivityError: Any other driver failure
        """
        try:
            result = await self._resolve(collection).update_one(
                filter_dict, update_dict, upsert=upsert
            )
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise self._failure("update_one", collection, e) from e
        return int(result.matched_count)

    async def _delete_many(self, filter_dict: Document, collection: Optional[str] = None) -> int:
        try:
            result = await self._resolve(collection).delete_many(filter_dict)
        except PyMongoError as e:
            raise self._failure("delete_many", collection, e) from e
        return int(result.deleted_count)

    async def _count(self, filter_dict: Document, collection: Optional[str] = None) -> int:
        try:
            return int(await self._resolve(collection).count_documents(filter_dict))
        except PyMongoError as e:
            raise self._failure("count_documents", collection, e) from e

    async def close(self) -> None:
        self._client.close()
        logger.info("Mongo store closed", extra={"store": type(self).__name__})
