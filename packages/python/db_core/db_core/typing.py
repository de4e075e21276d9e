"""Lightweight typing helpers shared by Mongo-backed repositories."""

from typing import Any, Iterator, Mapping, MutableMapping, Optional, Protocol, Sequence


MongoDocument = Mapping[str, Any]
Filter = Mapping[str, Any]
Pipeline = Sequence[Mapping[str, Any]]
EncodedDocument = MutableMapping[str, Any]


class RawCursor(Protocol):
    """What a typed cursor needs from a PyMongo ``Cursor``/``CommandCursor``."""

    def __next__(self) -> MongoDocument:  # pragma: no cover - structural typing only
        ...

    def __iter__(self) -> Iterator[MongoDocument]:  # pragma: no cover
        ...

    def close(self) -> None:  # pragma: no cover
        ...


class AsyncRawCursor(Protocol):
    """What an async typed cursor needs from a Motor cursor."""

    def __aiter__(self) -> Any:  # pragma: no cover - structural typing only
        ...

    async def __anext__(self) -> MongoDocument:  # pragma: no cover
        ...

    def close(self) -> Optional[Any]:  # pragma: no cover
        ...
