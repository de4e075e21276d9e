"""Typed CRUD/aggregation facade over a PyMongo collection.

Records go in, records come out: filters and replacements are encoded with
the bound record type's codec, results are decoded with it (or with the
requested result type for aggregations). Store errors propagate unchanged
and nothing is retried here.
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar, Union

from loguru import logger
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from db_core import get_db
from db_core.typing import Filter, Pipeline

from .codec import Codec, to_filter
from .cursor import TypedCursor
from .outcome import WriteOutcome

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T", bound=BaseModel)

FilterArg = Union[Filter, BaseModel, None]


class TypedCollection(Generic[R]):
    """CRUD and aggregation on one collection, typed by ``record_type``."""

    def __init__(self, collection: Collection, record_type: Type[R]):
        self._collection = collection
        self.record_type = record_type
        self.codec: Codec[R] = Codec.for_type(record_type)

    def __repr__(self) -> str:
        return f"TypedCollection({self.name!r}, {self.record_type.__name__})"

    @property
    def raw(self) -> Collection:
        return self._collection

    @property
    def name(self) -> str:
        return self._collection.name

    def with_record_type(self, record_type: Type[T]) -> "TypedCollection[T]":
        """Another facade over the same collection handle, bound to ``record_type``."""
        return TypedCollection(self._collection, record_type)

    def _filter(self, filter: FilterArg) -> Filter:
        return to_filter(filter, self.codec)

    def _log(self, operation: str, record_type: Optional[type] = None) -> None:
        logger.debug(
            "{collection}.{operation} [{record}]",
            collection=self.name,
            operation=operation,
            record=(record_type or self.record_type).__name__,
        )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def find(self, filter: FilterArg = None, **kwargs: Any) -> TypedCursor[R]:
        """Query lazily; decode errors surface while iterating the cursor."""
        self._log("find")
        return TypedCursor(self._collection.find(self._filter(filter), **kwargs), self.codec)

    def find_one(self, filter: FilterArg = None, **kwargs: Any) -> Optional[R]:
        self._log("find_one")
        document = self._collection.find_one(self._filter(filter), **kwargs)
        return None if document is None else self.codec.decode(document)

    def count_documents(self, filter: FilterArg = None, **kwargs: Any) -> int:
        self._log("count_documents")
        return self._collection.count_documents(self._filter(filter), **kwargs)

    def distinct(self, key: str, filter: FilterArg = None, **kwargs: Any) -> List[Any]:
        self._log("distinct")
        return self._collection.distinct(key, self._filter(filter), **kwargs)

    def aggregate(self, pipeline: Pipeline, result_type: Optional[Type[T]] = None, **kwargs: Any) -> TypedCursor[T]:
        """Run ``pipeline`` as given and decode each result into ``result_type``.

        Stages usually reshape documents, so results are decoded with the
        codec of ``result_type`` (the bound record type when omitted)."""

        codec = self.codec if result_type is None else Codec.for_type(result_type)
        self._log("aggregate", codec.record_type)
        return TypedCursor(self._collection.aggregate(list(pipeline), **kwargs), codec)

    # ------------------------------------------------------------------
    # find-and-modify
    # ------------------------------------------------------------------
    def find_one_and_delete(self, filter: FilterArg, **kwargs: Any) -> Optional[R]:
        """Remove one match and return it as it was before deletion."""
        self._log("find_one_and_delete")
        document = self._collection.find_one_and_delete(self._filter(filter), **kwargs)
        return None if document is None else self.codec.decode(document)

    def find_one_and_replace(
        self,
        filter: FilterArg,
        replacement: R,
        *,
        return_document: bool = ReturnDocument.BEFORE,
        **kwargs: Any,
    ) -> Optional[R]:
        """Replace one match with ``replacement``; returns the previous record by default."""
        self._log("find_one_and_replace")
        document = self._collection.find_one_and_replace(
            self._filter(filter),
            self.codec.encode(replacement),
            return_document=return_document,
            **kwargs,
        )
        return None if document is None else self.codec.decode(document)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def insert_one(self, record: R, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("insert_one")
        return WriteOutcome.from_result(self._collection.insert_one(self.codec.encode(record), **kwargs))

    def insert_many(self, records: Iterable[R], *, ordered: bool = True, **kwargs: Any) -> Optional[WriteOutcome]:
        """Encode ``records`` in order and insert them in one batch.

        Behaviour on partial failure is whatever the store does for
        ``ordered``; nothing is rolled back here."""

        documents = [self.codec.encode(record) for record in records]
        self._log("insert_many")
        if not documents:
            return WriteOutcome()
        return WriteOutcome.from_result(self._collection.insert_many(documents, ordered=ordered, **kwargs))

    def replace_one(self, filter: FilterArg, replacement: R, *, upsert: bool = False, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("replace_one")
        result = self._collection.replace_one(
            self._filter(filter), self.codec.encode(replacement), upsert=upsert, **kwargs
        )
        return WriteOutcome.from_result(result)

    def delete_one(self, filter: FilterArg, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("delete_one")
        return WriteOutcome.from_result(self._collection.delete_one(self._filter(filter), **kwargs))

    def delete_many(self, filter: FilterArg, **kwargs: Any) -> Optional[WriteOutcome]:
        self._log("delete_many")
        return WriteOutcome.from_result(self._collection.delete_many(self._filter(filter), **kwargs))


def typed_collection(name: str, record_type: Type[R], db: Optional[Database] = None) -> TypedCollection[R]:
    """Bind ``record_type`` to collection ``name`` of ``db`` (the configured database by default)."""

    database = db if db is not None else get_db()
    return TypedCollection(database[name], record_type)
