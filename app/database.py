"""Record store: a sorted key-value store over MongoDB (motor) or memory.

Every backend implements the same primitives:

- ``put(item)``: upsert at ``(item["pk"], item["sk"])``
- ``put_if_absent(item)``: conditional insert, False when the key is taken
- ``get(pk, sk)``: point lookup
- ``query(pk, lower, upper, descending)``: lazy, sort-key ordered range scan
- ``delete(pk, sk, condition)``: remove, optionally only if fields match

GuardedStore wraps a backend so every call is bounded by a timeout and
backend failures surface as StoreUnavailable.
"""
import asyncio
import copy
import logging
from typing import AsyncIterator, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config import settings
from app.errors import StoreUnavailable


logger = logging.getLogger(__name__)

BACKEND_ERRORS = (PyMongoError, OSError)

_END_OF_QUERY = object()


class KeyValueStore(Protocol):
    """Primitives the services rely on."""

    async def put(self, item: dict) -> None: ...

    async def put_if_absent(self, item: dict) -> bool: ...

    async def get(self, partition_key: str, sort_key: str) -> Optional[dict]: ...

    def query(
        self,
        partition_key: str,
        lower: Optional[str] = None,
        upper: Optional[str] = None,
        descending: bool = False,
    ) -> AsyncIterator[dict]: ...

    async def delete(
        self, partition_key: str, sort_key: str, condition: Optional[dict] = None
    ) -> bool: ...


async def _next_item(iterator: AsyncIterator[dict]):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END_OF_QUERY


def _matches(item: dict, condition: Optional[dict]) -> bool:
    if not condition:
        return True
    return all(item.get(field) == value for field, value in condition.items())


class MongoKeyValueStore:
    """Key-value store backed by one MongoDB collection keyed on (pk, sk)."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self) -> None:
        """Create the unique composite key index."""
        await self.collection.create_index(
            [("pk", ASCENDING), ("sk", ASCENDING)],
            unique=True,
            name="pk_sk_unique",
        )

    async def put(self, item: dict) -> None:
        await self.collection.replace_one(
            {"pk": item["pk"], "sk": item["sk"]},
            dict(item),
            upsert=True,
        )

    async def put_if_absent(self, item: dict) -> bool:
        try:
            # insert_one adds _id to the document it is given
            await self.collection.insert_one(dict(item))
        except DuplicateKeyError:
            return False
        return True

    async def get(self, partition_key: str, sort_key: str) -> Optional[dict]:
        return await self.collection.find_one(
            {"pk": partition_key, "sk": sort_key},
            projection={"_id": False},
        )

    async def query(
        self,
        partition_key: str,
        lower: Optional[str] = None,
        upper: Optional[str] = None,
        descending: bool = False,
    ) -> AsyncIterator[dict]:
        criteria: dict = {"pk": partition_key}
        sort_key_range = {}
        if lower is not None:
            sort_key_range["$gte"] = lower
        if upper is not None:
            sort_key_range["$lte"] = upper
        if sort_key_range:
            criteria["sk"] = sort_key_range

        cursor = self.collection.find(criteria, projection={"_id": False}).sort(
            "sk", DESCENDING if descending else ASCENDING
        )
        async for doc in cursor:
            yield doc

    async def delete(
        self, partition_key: str, sort_key: str, condition: Optional[dict] = None
    ) -> bool:
        criteria = {"pk": partition_key, "sk": sort_key}
        if condition:
            criteria.update(condition)
        result = await self.collection.delete_one(criteria)
        return result.deleted_count > 0


class InMemoryKeyValueStore:
    """
    Process-local store for development and tests.

    Items are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self):
        self._partitions: dict[str, dict[str, dict]] = {}

    async def put(self, item: dict) -> None:
        self._partitions.setdefault(item["pk"], {})[item["sk"]] = copy.deepcopy(item)

    async def put_if_absent(self, item: dict) -> bool:
        partition = self._partitions.setdefault(item["pk"], {})
        if item["sk"] in partition:
            return False
        partition[item["sk"]] = copy.deepcopy(item)
        return True

    async def get(self, partition_key: str, sort_key: str) -> Optional[dict]:
        item = self._partitions.get(partition_key, {}).get(sort_key)
        return copy.deepcopy(item) if item is not None else None

    async def query(
        self,
        partition_key: str,
        lower: Optional[str] = None,
        upper: Optional[str] = None,
        descending: bool = False,
    ) -> AsyncIterator[dict]:
        partition = self._partitions.get(partition_key, {})
        keys = sorted(
            (
                key
                for key in partition
                if (lower is None or key >= lower) and (upper is None or key <= upper)
            ),
            reverse=descending,
        )
        for key in keys:
            item = partition.get(key)
            if item is not None:
                yield copy.deepcopy(item)

    async def delete(
        self, partition_key: str, sort_key: str, condition: Optional[dict] = None
    ) -> bool:
        partition = self._partitions.get(partition_key, {})
        item = partition.get(sort_key)
        if item is None or not _matches(item, condition):
            return False
        del partition[sort_key]
        return True


class GuardedStore:
    """Applies a per-call timeout and error translation to any backend."""

    def __init__(self, store: KeyValueStore, timeout: Optional[float] = None):
        self._store = store
        self.timeout = settings.store_timeout_seconds if timeout is None else timeout

    async def _call(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("Store %s timed out after %ss", operation, self.timeout)
            raise StoreUnavailable(
                f"Store {operation} timed out",
                operation=operation,
                outcome_unknown=True,
            ) from e
        except BACKEND_ERRORS as e:
            logger.error("Store %s failed: %s", operation, e, exc_info=True)
            raise StoreUnavailable(f"Store {operation} failed", operation=operation) from e

    async def put(self, item: dict) -> None:
        await self._call("put", self._store.put(item))

    async def put_if_absent(self, item: dict) -> bool:
        return await self._call("put_if_absent", self._store.put_if_absent(item))

    async def get(self, partition_key: str, sort_key: str) -> Optional[dict]:
        return await self._call("get", self._store.get(partition_key, sort_key))

    async def query(
        self,
        partition_key: str,
        lower: Optional[str] = None,
        upper: Optional[str] = None,
        descending: bool = False,
    ) -> AsyncIterator[dict]:
        iterator = self._store.query(partition_key, lower, upper, descending).__aiter__()
        try:
            while True:
                item = await self._call("query", _next_item(iterator))
                if item is _END_OF_QUERY:
                    return
                yield item
        finally:
            # Release the backend cursor when the caller stops early
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    async def delete(
        self, partition_key: str, sort_key: str, condition: Optional[dict] = None
    ) -> bool:
        return await self._call("delete", self._store.delete(partition_key, sort_key, condition))


class Database:
    """Connection manager owning the configured store backend."""

    client: AsyncIOMotorClient | None = None
    store: KeyValueStore | None = None

    async def connect(self) -> None:
        """Connect to the configured backend and prepare indexes."""
        if settings.store_backend == "memory":
            self.store = InMemoryKeyValueStore()
            logger.info("Using in-memory record store")
            return

        self.client = AsyncIOMotorClient(settings.mongodb_url)
        collection = self.client[settings.mongodb_db_name][settings.records_collection]
        store = MongoKeyValueStore(collection)
        await store.ensure_indexes()
        self.store = store
        logger.info(
            "Connected to MongoDB: %s.%s",
            settings.mongodb_db_name,
            settings.records_collection,
        )

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")
        self.store = None


# Global database instance
database = Database()


async def get_store() -> GuardedStore:
    """Dependency to get the guarded record store."""
    if database.store is None:
        raise StoreUnavailable("Record store not connected")
    return GuardedStore(database.store)
