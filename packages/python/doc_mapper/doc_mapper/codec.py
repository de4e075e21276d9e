"""Bidirectional conversion between one record instance and one document.

The codec walks the record type's manifest in declaration order. Leaf
values are converted with a pydantic ``TypeAdapter`` built from the
annotation; records, wherever they sit inside a field's annotation (bare,
optional, in lists, tuples, dicts or unions), recurse into the record
type's own codec. Decoding is all-or-nothing: a record is only constructed
after every manifest field converted successfully.
"""

from __future__ import annotations

import collections.abc
import types
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Generic, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin
from uuid import UUID

from bson.binary import UUID_SUBTYPE, Binary
from bson.decimal128 import Decimal128
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.errors import PydanticUserError

from db_core.typing import EncodedDocument, Filter, MongoDocument

from .errors import DecodeError, FieldMissing, FieldTypeMismatch
from .manifest import FieldSpec, Manifest, contains_record, is_record_type, strip_optional

R = TypeVar("R", bound=BaseModel)

ID_FIELD = "_id"

# bson extended types (ObjectId, Decimal128, Binary, ...) are validated by isinstance.
_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True)

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNION_ORIGINS = (Union, types.UnionType)


def _adapter_for(annotation: Any) -> TypeAdapter:
    try:
        return TypeAdapter(annotation, config=_ADAPTER_CONFIG)
    except PydanticUserError:
        # Types carrying their own config (TypedDict, pydantic dataclasses) reject ours.
        return TypeAdapter(annotation)


@lru_cache(maxsize=None)
def _leaf_adapter(annotation: Any) -> TypeAdapter:
    return _adapter_for(annotation)


def encode_value(value: Any) -> Any:
    """Convert a free-form field value into something BSON can hold."""

    if isinstance(value, BaseModel):
        return Codec.for_type(type(value)).encode(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, UUID):
        return Binary.from_uuid(value)
    if isinstance(value, Mapping):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [encode_value(item) for item in value]
    return value


def _from_store(value: Any) -> Any:
    """Undo the store-side representations ``encode_value`` produced."""

    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, Binary) and value.subtype == UUID_SUBTYPE:
        return value.as_uuid()
    if isinstance(value, datetime) and value.time() == time.min:
        return value.date()
    if isinstance(value, Mapping):
        return {key: _from_store(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_from_store(item) for item in value]
    return value


class Codec(Generic[R]):
    """Encode/decode one record type using its field manifest."""

    def __init__(self, record_type: Type[R]):
        self.record_type = record_type
        self.manifest = Manifest.of(record_type)
        self._strict = record_type.model_config.get("strict")
        self._adapters: Dict[str, TypeAdapter] = {
            spec.name: _adapter_for(spec.annotation) for spec in self.manifest if not spec.records
        }

    @classmethod
    def for_type(cls, record_type: Type[R]) -> "Codec[R]":
        return _codec_for(record_type)

    def __repr__(self) -> str:
        return f"Codec({self.record_type.__name__})"

    # ------------------------------------------------------------------
    # encode
    # ------------------------------------------------------------------
    def encode(self, record: R) -> EncodedDocument:
        """Return a new document holding every manifest field of ``record``.

        A ``None`` ``_id`` is left out so the store assigns one on insert."""

        self._check_instance(record)
        document: EncodedDocument = {}
        for spec in self.manifest:
            value = spec.get(record)
            if value is None and spec.document_name == ID_FIELD:
                continue
            document[spec.document_name] = self._encode_field(spec, value)
        return document

    def encode_partial(self, record: R) -> EncodedDocument:
        """Encode only the fields explicitly set on ``record`` (filter use)."""

        self._check_instance(record)
        explicit = record.model_fields_set
        return {
            spec.document_name: self._encode_field(spec, spec.get(record))
            for spec in self.manifest
            if spec.name in explicit
        }

    def _check_instance(self, record: Any) -> None:
        if not isinstance(record, self.record_type):
            raise TypeError(f"{self!r} cannot encode {type(record).__name__}")

    def _encode_field(self, spec: FieldSpec, value: Any) -> Any:
        if value is None:
            return None
        if spec.nested is not None:
            nested = Codec.for_type(spec.nested)
            if spec.many:
                return [nested.encode(item) for item in value]
            return nested.encode(value)
        return encode_value(value)

    # ------------------------------------------------------------------
    # decode
    # ------------------------------------------------------------------
    def decode(self, document: MongoDocument) -> R:
        """Build a record from ``document``.

        Keys the manifest does not list are ignored, so projected or
        aggregated documents decode into narrower result types.

        Raises:
            FieldMissing: a required field has no entry in the document.
            FieldTypeMismatch: an entry does not convert to its field's type.
        """

        values: Dict[str, Any] = {}
        present: set[str] = set()
        for spec in self.manifest:
            if spec.document_name not in document:
                if spec.required:
                    raise FieldMissing(self.record_type, spec.document_name)
                values[spec.name] = spec.default()
                continue
            values[spec.name] = self._decode_field(spec, document[spec.document_name])
            present.add(spec.name)
        return self.record_type.model_construct(_fields_set=present, **values)

    def _decode_field(self, spec: FieldSpec, value: Any) -> Any:
        if spec.records:
            return self._decode_value(spec.annotation, value, spec.document_name)
        return self._validate_leaf(self._adapters[spec.name], spec.annotation, value, spec.document_name)

    def _decode_value(self, annotation: Any, value: Any, path: str) -> Any:
        inner, nullable = strip_optional(annotation)
        if value is None and nullable:
            return None
        if not contains_record(inner):
            return self._validate_leaf(_leaf_adapter(inner), inner, value, path)
        if is_record_type(inner):
            return self._decode_nested(Codec.for_type(inner), value, path)

        origin = get_origin(inner)
        args = get_args(inner)
        if origin in _SEQUENCE_ORIGINS:
            if not isinstance(value, (list, tuple)):
                raise FieldTypeMismatch(self.record_type, path, value, inner)
            return [self._decode_value(args[0], item, f"{path}.{index}") for index, item in enumerate(value)]
        if origin is tuple:
            return self._decode_tuple(inner, args, value, path)
        if origin in _MAPPING_ORIGINS:
            if not isinstance(value, Mapping):
                raise FieldTypeMismatch(self.record_type, path, value, inner)
            key_adapter = _leaf_adapter(args[0])
            return {
                self._validate_leaf(key_adapter, args[0], key, f"{path}.{key}"): self._decode_value(
                    args[1], item, f"{path}.{key}"
                )
                for key, item in value.items()
            }
        if origin in _UNION_ORIGINS:
            failures = []
            for member in args:
                try:
                    return self._decode_value(member, value, path)
                except DecodeError as exc:
                    failures.append(str(exc))
            raise FieldTypeMismatch(self.record_type, path, value, inner, "; ".join(failures))
        return self._validate_leaf(_leaf_adapter(inner), inner, value, path)

    def _decode_tuple(self, annotation: Any, args: tuple, value: Any, path: str) -> tuple:
        if not isinstance(value, (list, tuple)):
            raise FieldTypeMismatch(self.record_type, path, value, annotation)
        if len(args) == 2 and args[1] is Ellipsis:
            members = [args[0]] * len(value)
        elif len(args) == len(value):
            members = list(args)
        else:
            raise FieldTypeMismatch(self.record_type, path, value, annotation, f"expected {len(args)} items")
        return tuple(
            self._decode_value(member, item, f"{path}.{index}")
            for index, (member, item) in enumerate(zip(members, value))
        )

    def _decode_nested(self, nested: "Codec[Any]", value: Any, path: str) -> Any:
        if not isinstance(value, Mapping):
            raise FieldTypeMismatch(self.record_type, path, value, nested.record_type)
        try:
            return nested.decode(value)
        except (FieldMissing, FieldTypeMismatch) as exc:
            raise exc.nested_under(self.record_type, path) from exc

    def _validate_leaf(self, adapter: TypeAdapter, expected: Any, value: Any, path: str) -> Any:
        try:
            return adapter.validate_python(value, strict=self._strict)
        except ValidationError as exc:
            # Decimal128, UUID binaries and midnight datetimes come back from the store as such.
            converted = _from_store(value)
            if converted == value:
                raise self._leaf_error(exc, expected, value, path) from exc
            try:
                return adapter.validate_python(converted, strict=self._strict)
            except ValidationError:
                raise self._leaf_error(exc, expected, value, path) from exc

    def _leaf_error(self, exc: ValidationError, expected: Any, value: Any, path: str) -> DecodeError:
        details = exc.errors()
        first = details[0] if details else None
        if first is not None and first["type"] == "missing":
            return FieldMissing(self.record_type, ".".join([path, *(str(part) for part in first["loc"])]))
        return FieldTypeMismatch(self.record_type, path, value, expected, first["msg"] if first else None)


@lru_cache(maxsize=None)
def _codec_for(record_type: Type[BaseModel]) -> Codec[Any]:
    return Codec(record_type)


def to_filter(value: Union[Filter, BaseModel, None], codec: Optional[Codec[Any]] = None) -> Filter:
    """Normalise a filter argument.

    Mappings pass through untouched, ``None`` selects everything, and a
    record is encoded from the fields that were explicitly set on it."""

    if value is None:
        return {}
    if isinstance(value, BaseModel):
        if codec is None or not isinstance(value, codec.record_type):
            codec = Codec.for_type(type(value))
        return codec.encode_partial(value)
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"filter must be a mapping or a record, not {type(value).__name__}")
