"""Field manifests: the ordered description of a record type's stored fields.

A record type is a pydantic model. Its class body is the declaration; the
manifest is read from ``model_fields`` once per type and cached, and the
codec never inspects records beyond what the manifest lists.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterator, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from .errors import ManifestError

R = TypeVar("R", bound=BaseModel)

_UNION_TYPES = (Union, types.UnionType)
_LIST_TYPES = (list,)


@dataclass(frozen=True)
class FieldSpec:
    """One stored field of a record type."""

    name: str
    document_name: str
    annotation: Any
    required: bool
    nullable: bool = False
    nested: Optional[Type[BaseModel]] = None
    many: bool = False
    records: bool = False
    info: Optional[FieldInfo] = field(default=None, compare=False, repr=False)

    def get(self, record: BaseModel) -> Any:
        return getattr(record, self.name)

    def default(self) -> Any:
        return self.info.get_default(call_default_factory=True)


@dataclass(frozen=True)
class Manifest:
    record_type: Type[BaseModel]
    fields: Tuple[FieldSpec, ...]

    @classmethod
    def of(cls, record_type: Type[BaseModel]) -> "Manifest":
        return _build_manifest(record_type)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def document_names(self) -> Tuple[str, ...]:
        return tuple(spec.document_name for spec in self.fields)


def record(record_type: Type[R]) -> Type[R]:
    """Class decorator that builds (and validates) the manifest at import time."""

    Manifest.of(record_type)
    return record_type


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, BaseModel)


def strip_optional(annotation: Any) -> Tuple[Any, bool]:
    """Split ``Optional[X]`` into ``(X, True)``; other annotations come back as-is."""
    if get_origin(annotation) in _UNION_TYPES:
        args = get_args(annotation)
        non_null = tuple(arg for arg in args if arg is not type(None))
        if len(non_null) == 1 and len(non_null) != len(args):
            return non_null[0], True
        return annotation, type(None) in args
    return annotation, annotation is None or annotation is type(None)


def contains_record(annotation: Any) -> bool:
    """True when a record type appears anywhere inside ``annotation``."""
    if is_record_type(annotation):
        return True
    return any(contains_record(arg) for arg in get_args(annotation))


def _field_spec(name: str, info: FieldInfo) -> FieldSpec:
    annotation = info.annotation
    inner, nullable = strip_optional(annotation)
    nested = None
    many = False
    if is_record_type(inner):
        nested = inner
    elif get_origin(inner) in _LIST_TYPES:
        item_args = get_args(inner)
        if item_args and is_record_type(item_args[0]):
            nested = item_args[0]
            many = True
    return FieldSpec(
        name=name,
        document_name=info.alias or name,
        annotation=annotation,
        required=info.is_required(),
        nullable=nullable,
        nested=nested,
        many=many,
        records=contains_record(inner),
        info=info,
    )


@lru_cache(maxsize=None)
def _build_manifest(record_type: Type[BaseModel]) -> Manifest:
    if not is_record_type(record_type):
        raise ManifestError(f"{record_type!r} is not a pydantic model and has no field manifest")

    specs = tuple(_field_spec(name, info) for name, info in record_type.model_fields.items())
    seen: set[str] = set()
    for spec in specs:
        if spec.document_name in seen:
            raise ManifestError(
                f"{record_type.__name__} maps more than one field to document name {spec.document_name!r}"
            )
        seen.add(spec.document_name)
    return Manifest(record_type=record_type, fields=specs)
