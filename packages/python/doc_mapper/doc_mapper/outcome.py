"""Summary of what a mutating operation did at the store."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult


class WriteOutcome(BaseModel):
    """Counts reported by the store for one insert, replace or delete."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    inserted_count: int = 0
    inserted_ids: List[Any] = Field(default_factory=list)
    matched_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0
    upserted_id: Optional[Any] = None

    @property
    def inserted_id(self) -> Optional[Any]:
        return self.inserted_ids[0] if self.inserted_ids else None

    @classmethod
    def from_result(cls, result: Any) -> Optional["WriteOutcome"]:
        """Translate a PyMongo result; ``None`` when the write was unacknowledged."""

        if not result.acknowledged:
            return None
        if isinstance(result, InsertOneResult):
            return cls(inserted_count=1, inserted_ids=[result.inserted_id])
        if isinstance(result, InsertManyResult):
            ids = list(result.inserted_ids)
            return cls(inserted_count=len(ids), inserted_ids=ids)
        if isinstance(result, UpdateResult):
            return cls(
                matched_count=result.matched_count,
                modified_count=result.modified_count,
                upserted_id=result.upserted_id,
            )
        if isinstance(result, DeleteResult):
            return cls(deleted_count=result.deleted_count)
        raise TypeError(f"unsupported write result {type(result).__name__}")
