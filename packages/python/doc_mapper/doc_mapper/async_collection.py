"""Motor-backed counterpart of ``TypedCollection`` for asyncio applications."""

from __future__ import annotations

from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar, Union

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ReturnDocument

from db_core import get_async_db
from db_core.typing import Filter, MongoDocument, Pipeline

from .codec import Codec, to_filter
from .cursor import AsyncTypedCursor
from .outcome import WriteOutcome

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T", bound=BaseModel)

FilterArg = Union[Filter, BaseModel, None]


class AsyncTypedCollection(Generic[R]):
    """Same surface as ``TypedCollection``; store calls are awaited."""

    def __init__(self, collection: AsyncIOMotorCollection, record_type: Type[R]):
        self._collection = collection
        self.record_type = record_type
        self.codec: Codec[R] = Codec.for_type(record_type)

    def __repr__(self) -> str:
        return f"AsyncTypedCollection({self.name!r}, {self.record_type.__name__})"

    @property
    def raw(self) -> AsyncIOMotorCollection:
        return self._collection

    @property
    def name(self) -> str:
        return self._collection.name

    def with_record_type(self, record_type: Type[T]) -> "AsyncTypedCollection[T]":
        return AsyncTypedCollection(self._collection, record_type)

    def _filter(self, filter: FilterArg) -> Filter:
        return to_filter(filter, self.codec)

    def _decode(self, document: Optional[MongoDocument]) -> Optional[R]:
        return None if document is None else self.codec.decode(document)

    def _log(self, operation: str, record_type: Optional[type] = None) -> None:
        logger.debug(
            "{collection}.{operation} [{record}] (async)",
            collection=self.name,
            operation=operation,
            record=(record_type or self.record_type).__name__,
        )

    def find(self, filter: FilterArg = None, **kwargs: Any) -> AsyncTypedCursor[R]:
        self._log("find")
        return AsyncTypedCursor(self._collection.find(self._filter(filter), **kwargs), self.codec)

    async def find_one(self, filter: FilterArg = None, **kwargs: Any) -> Optional[R]:
        self._log("find_one")
        return self._decode(await self._collection.find_one(self._filter(filter), **kwargs))

    async def count_documents(self, filter: FilterArg = None, **kwargs: Any) -> int:
        self._log("count_documents")
        return await self._collection.count_documents(self._filter(filter), **kwargs)

    async def distinct(self, key: str, filter: FilterArg = None, **kwargs: Any) -> List[Any]:
        self._log("distinct")
        return await self._collection.distinct(key, self._filter(filter), **kwargs)

    def aggregate(self, pipeline: Pipeline, result_type: Optional[Type[T]] = None, **kwargs: Any) -> AsyncTypedCursor[T]:
        codec = self.codec if result_type is None else Codec.for_type(result_type)
        self._log("aggregate", codec.record_type)
        return AsyncTypedCursor(self._collection.aggregate(list(pipeline), **kwargs), codec)

    async def find_one_and_delete(self, filter: FilterArg, **kwargs: Any) -> Optional[R]:
        self._log("find_one_and_delete")
        return self._decode(await self._collection.find_one_and_delete(self._filter(filter), **kwargs))

    async def find_one_and_replace(
        self,
        filter: FilterArg,
        replacement: R,
        *,
        return_document: bool = ReturnDocument.BEFORE,
        **kwargs: Any,
    ) -> Optional[R]:
        self._log("find_one_and_replace")
        document = await self._collection.find_one_and_replace(
            self._filter(filter),
            self.codec.encode(replacement),
            return_document=return_document,
            **kwargs,
        )
        return self._decode(document)

    async def insert_one(self, record: R, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("insert_one")
        return WriteOutcome.from_result(await self._collection.insert_one(self.codec.encode(record), **kwargs))

    async def insert_many(self, records: Iterable[R], *, ordered: bool = True, **kwargs: Any) -> Optional[WriteOutcome]:
        documents = [self.codec.encode(record) for record in records]
        self._log("insert_many")
        if not documents:
            return WriteOutcome()
        result = await self._collection.insert_many(documents, ordered=ordered, **kwargs)
        return WriteOutcome.from_result(result)

    async def replace_one(
        self, filter: FilterArg, replacement: R, *, upsert: bool = False, **kwargs: Any
    ) -> Optional[WriteOutcome]:
        self._log("replace_one")
        result = await self._collection.replace_one(
            self._filter(filter), self.codec.encode(replacement), upsert=upsert, **kwargs
        )
        return WriteOutcome.from_result(result)

    async def delete_one(self, filter: FilterArg, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("delete_one")
        return WriteOutcome.from_result(await self._collection.delete_one(self._filter(filter), **kwargs))

    async def delete_many(self, filter: FilterArg, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("delete_many")
        return WriteOutcome.from_result(await self._collection.delete_many(self._filter(filter), **kwargs))


def async_typed_collection(
    name: str, record_type: Type[R], db: Optional[AsyncIOMotorDatabase] = None
) -> AsyncTypedCollection[R]:
    database = db if db is not None else get_async_db()
    return AsyncTypedCollection(database[name], record_type)
