"""
Snapshot stores for the list of already-known circulars.

The snapshot is kept as a single ordered list. Every mutation replaces or
extends that list in one step, so a concurrent reader sees either the old
snapshot or the new one, never a mix.
"""

import asyncio
from typing import List, Optional, Protocol

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError

from .exceptions import SnapshotStoreError
from .models import Circular, circulars_from_documents, circulars_to_documents

logger = structlog.get_logger(__name__)


class SnapshotStore(Protocol):
    """Port for the locally persisted snapshot of circulars."""

    async def read_all(self) -> List[Circular]:
        """Return a copy of the snapshot in stored order."""
        ...

    async def replace_all(self, items: List[Circular]) -> None:
        """Discard the snapshot and store `items` in its place."""
        ...

    async def append_all(self, items: List[Circular]) -> None:
        """Extend the snapshot with `items`, keeping their order."""
        ...


class InMemorySnapshotStore:
    """Process-local snapshot store guarded by an asyncio lock."""

    def __init__(self, initial: Optional[List[Circular]] = None):
        self._items: List[Circular] = list(initial or [])
        self._lock = asyncio.Lock()

    async def read_all(self) -> List[Circular]:
        async with self._lock:
            return list(self._items)

    async def replace_all(self, items: List[Circular]) -> None:
        async with self._lock:
            self._items = list(items)
        logger.debug("Snapshot replaced", count=len(items))

    async def append_all(self, items: List[Circular]) -> None:
        async with self._lock:
            self._items = self._items + list(items)
        logger.debug("Snapshot extended", count=len(items))


class MongoSnapshotStore:
    """
    Async MongoDB snapshot store.

    The snapshot is one document `{_id: snapshot_key, items: [...]}`. MongoDB
    writes to a single document are atomic, which gives replace and append
    all-or-nothing semantics without a transaction.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_name: str,
        snapshot_key: str = "circulars"
    ):
        """
        Initialize MongoDB snapshot store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection holding snapshot documents
            snapshot_key: `_id` of the snapshot document
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.snapshot_key = snapshot_key
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise SnapshotStoreError(f"Cannot connect to MongoDB: {e}", operation="connect") from e

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def read_all(self) -> List[Circular]:
        """Return the stored snapshot, empty on first run."""
        try:
            document = await self.collection.find_one({"_id": self.snapshot_key})
        except PyMongoError as e:
            logger.error("Failed to read snapshot", error=str(e))
            raise SnapshotStoreError(f"Failed to read snapshot: {e}", operation="read_all") from e

        if not document:
            return []
        return circulars_from_documents(document.get("items", []))

    async def replace_all(self, items: List[Circular]) -> None:
        """Replace the snapshot document with `items`."""
        try:
            await self.collection.replace_one(
                {"_id": self.snapshot_key},
                {"_id": self.snapshot_key, "items": circulars_to_documents(items)},
                upsert=True
            )
            logger.debug("Snapshot replaced", count=len(items))

        except PyMongoError as e:
            logger.error("Failed to replace snapshot", count=len(items), error=str(e))
            raise SnapshotStoreError(f"Failed to replace snapshot: {e}", operation="replace_all") from e

    async def append_all(self, items: List[Circular]) -> None:
        """Append `items` to the snapshot document in one update."""
        if not items:
            return

        try:
            await self.collection.update_one(
                {"_id": self.snapshot_key},
                {"$push": {"items": {"$each": circulars_to_documents(items)}}},
                upsert=True
            )
            logger.debug("Snapshot extended", count=len(items))

        except PyMongoError as e:
            logger.error("Failed to append to snapshot", count=len(items), error=str(e))
            raise SnapshotStoreError(f"Failed to append to snapshot: {e}", operation="append_all") from e
