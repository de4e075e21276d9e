"""Errors raised by the mapping layer.

Store failures are not wrapped: anything PyMongo raises reaches the caller
unchanged, and ``StoreError`` is only an alias for catching them."""

from typing import Any, Optional

from pymongo.errors import PyMongoError

StoreError = PyMongoError


class MappingError(Exception):
    """Base class for encode/decode problems in doc_mapper."""


class ManifestError(MappingError):
    """Raised when a type cannot be described by a field manifest."""


class DecodeError(MappingError):
    """Raised when a document cannot be decoded into a record type.

    ``path`` is the dotted location of the failing field relative to
    ``record_type`` (``"address.city"``, ``"items.2.qty"``)."""

    def __init__(self, record_type: type, path: str, message: str):
        self.record_type = record_type
        self.path = path
        super().__init__(f"{record_type.__name__}.{path}: {message}")


class FieldMissing(DecodeError):
    """A field required by the manifest is absent from the document."""

    def __init__(self, record_type: type, path: str):
        super().__init__(record_type, path, "required field is missing")

    def nested_under(self, record_type: type, prefix: str) -> "FieldMissing":
        return FieldMissing(record_type, f"{prefix}.{self.path}")


class FieldTypeMismatch(DecodeError):
    """A field is present but its value does not convert to the declared type."""

    def __init__(self, record_type: type, path: str, value: Any, expected: Any, detail: Optional[str] = None):
        self.value = value
        self.expected = expected
        self.detail = detail
        message = f"cannot convert {value!r} to {_type_name(expected)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(record_type, path, message)

    def nested_under(self, record_type: type, prefix: str) -> "FieldTypeMismatch":
        return FieldTypeMismatch(record_type, f"{prefix}.{self.path}", self.value, self.expected, self.detail)


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)
