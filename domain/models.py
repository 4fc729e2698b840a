from enum import Enum
from typing import Any, Self, TypeAlias


Recipe: TypeAlias = dict[str, Any]
RecipeId: TypeAlias = str


ID_FIELD = "idMeal"
CATEGORY_FIELD = "strCategory"


def recipe_id(recipe: Recipe) -> RecipeId | None:
    value = recipe.get(ID_FIELD)
    return None if value is None else str(value)


class Signal(Enum):
    """Outcomes of a race that are neither a result nor a raised error."""

    TIMEOUT = "timeout"
    FAILURE = "failure"


class CacheEntry:
    def __init__(
        self,
        *,
        key: str,
        value: Any,
        stored_at: float,
        ttl: float,
    ) -> None:
        self.key = key
        self.value = value
        self.stored_at = stored_at
        self.ttl = ttl

    def __repr__(self) -> str:
        return f"<CacheEntry(key={self.key}, stored_at={self.stored_at})>"

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "stored_at": self.stored_at,
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            key=str(data["key"]),
            value=data["value"],
            stored_at=float(data["stored_at"]),
            ttl=float(data["ttl"]),
        )
