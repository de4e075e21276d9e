"""Typed object-document mapping for MongoDB collections.

Example usage:

    from pydantic import BaseModel
    from doc_mapper import typed_collection

    class Foo(BaseModel):
        a: int
        b: int
        c: int

    foos = typed_collection("foos", Foo)
    foos.insert_one(Foo(a=1, b=4, c=9))
    big = list(foos.find({"c": {"$gt": 100}}))
"""

from .async_collection import AsyncTypedCollection, async_typed_collection
from .codec import Codec, encode_value, to_filter
from .collection import TypedCollection, typed_collection
from .cursor import AsyncTypedCursor, TypedCursor
from .errors import (
    DecodeError,
    FieldMissing,
    FieldTypeMismatch,
    ManifestError,
    MappingError,
    StoreError,
)
from .manifest import FieldSpec, Manifest, record
from .outcome import WriteOutcome

__all__ = [
    "AsyncTypedCollection",
    "AsyncTypedCursor",
    "Codec",
    "DecodeError",
    "FieldMissing",
    "FieldSpec",
    "FieldTypeMismatch",
    "Manifest",
    "ManifestError",
    "MappingError",
    "StoreError",
    "TypedCollection",
    "TypedCursor",
    "WriteOutcome",
    "async_typed_collection",
    "encode_value",
    "record",
    "to_filter",
    "typed_collection",
]
