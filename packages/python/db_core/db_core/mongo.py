"""MongoDB client helpers built on top of PyMongo and Motor.

Only connection plumbing lives here; ``doc_mapper`` builds the typed
collections on top of the handles returned by these helpers."""

from functools import lru_cache
from typing import Any

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import MongoClient
from pymongo.database import Database

from . import config


def _current():
    return config.settings


@lru_cache
def get_mongo_client() -> MongoClient:
    """Return a cached PyMongo client configured via ``db_core.config``."""

    cfg = _current()
    logger.debug("Creating MongoClient for {uri}", uri=cfg.uri)
    return MongoClient(cfg.uri, **cfg.client_kwargs())


@lru_cache
def get_async_client() -> AsyncIOMotorClient:
    """Return a cached Motor client configured via ``db_core.config``."""

    cfg = _current()
    logger.debug("Creating AsyncIOMotorClient for {uri}", uri=cfg.uri)
    return AsyncIOMotorClient(cfg.uri, **cfg.client_kwargs())


def reset_clients() -> None:
    """Close and forget cached clients so the next call re-reads settings."""

    for factory in (get_mongo_client, get_async_client):
        if factory.cache_info().currsize:
            factory().close()
        factory.cache_clear()


def get_db(name: str | None = None) -> Database:
    """Return the application database (``settings.db_name`` by default)."""

    return get_mongo_client()[name or _current().db_name]


def get_async_db(name: str | None = None) -> AsyncIOMotorDatabase:
    return get_async_client()[name or _current().db_name]


def ping() -> dict[str, Any]:
    """Run a simple ``ping`` command against the configured MongoDB server."""

    get_db().command("ping")
    return {"ok": True}


async def async_ping() -> dict[str, Any]:
    db = get_async_db()
    await db.command("ping")
    return {"ok": True}
