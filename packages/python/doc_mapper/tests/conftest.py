import mongomock
import pytest


@pytest.fixture()
def mongo_client():
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture()
def raw_collection(mongo_client):
    coll = mongo_client["testdb"]["testcollection"]
    coll.delete_many({})
    return coll
