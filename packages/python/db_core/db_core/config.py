"""Configuration helpers for MongoDB connections used by db_core.

Values come from ``MONGO_*`` environment variables (or a local ``.env``).
Applications may assign a new ``MongoSettings`` instance to
``db_core.config.settings`` and call ``reset_clients()`` to pick it up.
"""
from loguru import logger

from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """Basic MongoDB configuration shared by the sync and async clients."""

    model_config = SettingsConfigDict(env_prefix="MONGO_", env_file=".env", extra="ignore")

    uri: str = "mongodb://localhost:27017"
    db_name: str = "doc_mapper"
    server_selection_timeout_ms: int = 5000
    tz_aware: bool = False

    def client_kwargs(self) -> dict:
        return {
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "tz_aware": self.tz_aware,
        }


def _default_settings() -> "MongoSettings":
    return MongoSettings()


settings: MongoSettings = _default_settings()
logger.info("MongoSettings initialized with uri={uri} db_name={db_name}", uri=settings.uri, db_name=settings.db_name)
