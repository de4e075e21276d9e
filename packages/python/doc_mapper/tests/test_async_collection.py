import asyncio

import pytest
from pydantic import BaseModel
from pymongo.errors import AutoReconnect

from doc_mapper import AsyncTypedCollection, AsyncTypedCursor, Codec, FieldTypeMismatch, async_typed_collection

DOC = {"a": 1, "b": 4, "c": 9}


class Foo(BaseModel):
    a: int
    b: int
    c: int


class FooResult(BaseModel):
    a: int
    sum: int


class MotorLikeCursor:
    """Async cursor over a synchronous one; ``close`` is awaitable like Motor's."""

    def __init__(self, cursor):
        self._cursor = cursor
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._cursor)
        except StopIteration:
            raise StopAsyncIteration

    async def close(self):
        self.closed = True
        self._cursor.close()


class MotorLikeCollection:
    """Motor-shaped facade over a mongomock collection."""

    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name
        self.cursors = []

    def _wrap(self, cursor):
        wrapped = MotorLikeCursor(cursor)
        self.cursors.append(wrapped)
        return wrapped

    def find(self, *args, **kwargs):
        return self._wrap(self._collection.find(*args, **kwargs))

    def aggregate(self, pipeline, **kwargs):
        return self._wrap(self._collection.aggregate(pipeline, **kwargs))

    def __getattr__(self, name):
        method = getattr(self._collection, name)

        async def call(*args, **kwargs):
            return method(*args, **kwargs)

        return call


class MotorLikeDatabase:
    def __init__(self, database):
        self._database = database

    def __getitem__(self, name):
        return MotorLikeCollection(self._database[name])


@pytest.fixture()
def motor_collection(raw_collection):
    return MotorLikeCollection(raw_collection)


@pytest.fixture()
def foo_coll(motor_collection):
    return AsyncTypedCollection(motor_collection, Foo)


def test_async_crud_round_trip(foo_coll):
    async def scenario():
        inserted = await foo_coll.insert_many([Foo(a=0, b=0, c=i) for i in range(5)])
        assert inserted.inserted_count == 5

        assert await foo_coll.find_one({"c": 3}) == Foo(a=0, b=0, c=3)
        assert await foo_coll.find_one({"c": 99}) is None

        previous = await foo_coll.find_one_and_replace({"c": 3}, Foo(a=0, b=0, c=33))
        assert previous == Foo(a=0, b=0, c=3)

        replaced = await foo_coll.replace_one({"c": 33}, Foo(a=0, b=0, c=333))
        assert replaced.modified_count == 1

        deleted = await foo_coll.find_one_and_delete({"c": 333})
        assert deleted == Foo(a=0, b=0, c=333)
        assert await foo_coll.count_documents({"c": 333}) == 0

        assert (await foo_coll.insert_one(Foo(a=9, b=9, c=9))).inserted_count == 1
        assert (await foo_coll.delete_one({"a": 9})).deleted_count == 1
        assert (await foo_coll.delete_many({"a": 0})).deleted_count == 4
        assert await foo_coll.distinct("a") == []

    asyncio.run(scenario())


def test_async_find_is_single_pass_and_releases_cursor(raw_collection, motor_collection, foo_coll):
    raw_collection.insert_many([dict(DOC) for _ in range(3)])

    async def scenario():
        cursor = foo_coll.find({"a": 1})
        assert isinstance(cursor, AsyncTypedCursor)
        first = [foo async for foo in cursor]
        second = await cursor.to_list()
        return first, second

    first, second = asyncio.run(scenario())

    assert first == [Foo(**DOC)] * 3
    assert second == []
    assert motor_collection.cursors[0].closed


def test_async_aggregate(raw_collection, foo_coll):
    for _ in range(10):
        raw_collection.insert_one(dict(DOC))
    pipeline = [
        {"$group": {"_id": "$a", "a": {"$sum": "$a"}, "b": {"$sum": "$b"}, "c": {"$sum": "$c"}}},
        {"$project": {"a": "$_id", "sum": {"$add": ["$a", "$b", "$c"]}}},
    ]

    results = asyncio.run(foo_coll.aggregate(pipeline, FooResult).to_list())

    assert results == [FooResult(a=1, sum=140)]


def test_async_decode_failure_releases_cursor(raw_collection, motor_collection, foo_coll):
    raw_collection.insert_one({"a": 1, "b": "four", "c": 9})
    raw_collection.insert_one(dict(DOC))

    async def scenario():
        cursor = foo_coll.find({}, sort=[("_id", 1)])
        with pytest.raises(FieldTypeMismatch):
            await cursor.__anext__()
        return await cursor.to_list()

    assert asyncio.run(scenario()) == []
    assert motor_collection.cursors[0].closed


def test_async_cursor_context_manager_releases_early(raw_collection, motor_collection):
    raw_collection.insert_many([dict(DOC) for _ in range(3)])

    async def scenario():
        raw = motor_collection.find({})
        async with AsyncTypedCursor(raw, Codec.for_type(Foo)) as cursor:
            first = await cursor.__anext__()
        return first, cursor.alive, raw.closed

    first, alive, closed = asyncio.run(scenario())

    assert first == Foo(**DOC)
    assert not alive
    assert closed


def test_async_typed_collection_binds_to_given_database(mongo_client):
    coll = async_typed_collection("foos", Foo, db=MotorLikeDatabase(mongo_client["asyncdb"]))

    asyncio.run(coll.insert_one(Foo(a=1, b=2, c=3)))

    assert coll.name == "foos"
    assert mongo_client["asyncdb"]["foos"].count_documents({}) == 1


def test_async_to_list_zero_leaves_cursor_open(raw_collection, motor_collection, foo_coll):
    raw_collection.insert_many([dict(DOC) for _ in range(2)])

    async def scenario():
        cursor = foo_coll.find({})
        empty = await cursor.to_list(0)
        rest = await cursor.to_list()
        return empty, rest

    empty, rest = asyncio.run(scenario())

    assert empty == []
    assert rest == [Foo(**DOC)] * 2


class DroppingMotorCursor(MotorLikeCursor):
    """Fails with a store error on the second advance."""

    def __init__(self, cursor):
        super().__init__(cursor)
        self.advances = 0

    async def __anext__(self):
        self.advances += 1
        if self.advances == 2:
            raise AutoReconnect("connection closed")
        return await super().__anext__()


def test_async_store_failure_releases_cursor(raw_collection):
    raw_collection.insert_many([dict(DOC) for _ in range(3)])
    raw = DroppingMotorCursor(raw_collection.find({}))

    async def scenario():
        cursor = AsyncTypedCursor(raw, Codec.for_type(Foo))
        assert await cursor.__anext__() == Foo(**DOC)
        with pytest.raises(AutoReconnect):
            await cursor.__anext__()
        return cursor.alive

    assert asyncio.run(scenario()) is False
    assert raw.closed
