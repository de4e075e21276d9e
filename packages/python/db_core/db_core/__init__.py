"""Minimal MongoDB helpers shared across typed repositories.

Example usage:

    from db_core import get_db

    def list_items():
        return list(get_db()["ideas"].find({"owner_id": "user-123"}).sort("rank", 1))
"""

from .config import MongoSettings, settings
from .mongo import (
    async_ping,
    get_async_client,
    get_async_db,
    get_db,
    get_mongo_client,
    ping,
    reset_clients,
)
from .typing import AsyncRawCursor, EncodedDocument, Filter, MongoDocument, Pipeline, RawCursor

__all__ = [
    "MongoSettings",
    "settings",
    "get_mongo_client",
    "get_async_client",
    "get_db",
    "get_async_db",
    "ping",
    "async_ping",
    "reset_clients",
    "MongoDocument",
    "EncodedDocument",
    "Filter",
    "Pipeline",
    "RawCursor",
    "AsyncRawCursor",
]
