"""Lazy typed cursors: one decode per advance over a raw document cursor."""

from __future__ import annotations

import inspect
from typing import Any, Generic, List, Optional, TypeVar

from loguru import logger

from db_core.typing import AsyncRawCursor, RawCursor

from .codec import Codec
from .errors import DecodeError

T = TypeVar("T")


class TypedCursor(Generic[T]):
    """Forward-only, single-pass iterator of records decoded from ``raw``.

    The typed cursor owns the raw cursor: it is closed once the results are
    exhausted, when a document fails to decode, or when ``close()`` is
    called (also on leaving a ``with`` block). Iterating again after that
    yields nothing; issue a new query to read the results a second time.
    """

    def __init__(self, raw: RawCursor, codec: Codec[Any]):
        self._raw = raw
        self._codec = codec
        self._closed = False

    @property
    def record_type(self) -> type:
        return self._codec.record_type

    @property
    def alive(self) -> bool:
        return not self._closed

    def __iter__(self) -> "TypedCursor[T]":
        return self

    def __next__(self) -> T:
        if self._closed:
            raise StopIteration
        try:
            document = next(self._raw)
        except StopIteration:
            logger.debug("TypedCursor[{record}] exhausted", record=self.record_type.__name__)
            self.close()
            raise
        except Exception as exc:
            logger.warning(
                "TypedCursor[{record}] releasing cursor after store failure: {error}",
                record=self.record_type.__name__,
                error=exc,
            )
            self.close()
            raise
        try:
            return self._codec.decode(document)
        except DecodeError as exc:
            logger.warning(
                "TypedCursor[{record}] releasing cursor after decode failure: {error}",
                record=self.record_type.__name__,
                error=exc,
            )
            self.close()
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._raw.close()

    def to_list(self, length: Optional[int] = None) -> List[T]:
        """Drain up to ``length`` records (all when ``None``)."""

        items: List[T] = []
        while length is None or len(items) < length:
            try:
                items.append(next(self))
            except StopIteration:
                break
        return items

    def __enter__(self) -> "TypedCursor[T]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncTypedCursor(Generic[T]):
    """Async counterpart of ``TypedCursor`` over a Motor cursor."""

    def __init__(self, raw: AsyncRawCursor, codec: Codec[Any]):
        self._raw = raw
        self._codec = codec
        self._closed = False

    @property
    def record_type(self) -> type:
        return self._codec.record_type

    @property
    def alive(self) -> bool:
        return not self._closed

    def __aiter__(self) -> "AsyncTypedCursor[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        try:
            document = await self._raw.__anext__()
        except StopAsyncIteration:
            logger.debug("AsyncTypedCursor[{record}] exhausted", record=self.record_type.__name__)
            await self.close()
            raise
        except Exception as exc:
            logger.warning(
                "AsyncTypedCursor[{record}] releasing cursor after store failure: {error}",
                record=self.record_type.__name__,
                error=exc,
            )
            await self.close()
            raise
        try:
            return self._codec.decode(document)
        except DecodeError as exc:
            logger.warning(
                "AsyncTypedCursor[{record}] releasing cursor after decode failure: {error}",
                record=self.record_type.__name__,
                error=exc,
            )
            await self.close()
            raise

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Motor cursors return an awaitable from close(); plain ones return None.
        result = self._raw.close()
        if inspect.isawaitable(result):
            await result

    async def to_list(self, length: Optional[int] = None) -> List[T]:
        items: List[T] = []
        while length is None or len(items) < length:
            try:
                items.append(await self.__anext__())
            except StopAsyncIteration:
                break
        return items

    async def __aenter__(self) -> "AsyncTypedCursor[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
