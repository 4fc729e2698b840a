import asyncio
from collections import Counter
from pathlib import Path
from typing import Any

import pytest

from domain.cache import CacheStore
from domain.catalog import TransportFailure
from domain.fetch import Fetcher
from domain.models import Recipe, RecipeId, recipe_id


def meal(id: str, name: str = "", category: str = "Dessert") -> Recipe:
    return {"idMeal": id, "strMeal": name or f"Meal {id}", "strCategory": category}


class FakeCatalog:
    """Stands in for `CatalogClient`. Answers are keyed by "kind:term"."""

    def __init__(
        self,
        meals: dict[str, list[Recipe]] | None = None,
        *,
        delay: float = 0.0,
    ) -> None:
        self.meals = {} if meals is None else meals
        self.delay = delay
        self.failures: Counter[str] = Counter()
        self.calls: list[str] = []
        self.completed: list[str] = []
        self.closed = False

    def fail(self, key: str, times: int = 1_000) -> None:
        self.failures[key] = times

    async def _answer(self, kind: str, term: str = "") -> list[Recipe]:
        key = f"{kind}:{term}"
        self.calls.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)
        self.completed.append(key)
        for k in (key, kind):
            if self.failures[k] > 0:
                self.failures[k] -= 1
                raise TransportFailure(f"{key}: status 503")
        return list(self.meals.get(key, []))

    async def search_by_name(self, term: str) -> list[Recipe]:
        return await self._answer("name", term)

    async def lookup_by_id(self, id: str) -> list[Recipe]:
        return await self._answer("id", id)

    async def search_by_letter(self, letter: str) -> list[Recipe]:
        return await self._answer("letter", letter)

    async def filter_by_ingredient(self, term: str) -> list[Recipe]:
        return await self._answer("ingredient", term)

    async def filter_by_category(self, term: str) -> list[Recipe]:
        return await self._answer("category", term)

    async def random_pick(self) -> list[Recipe]:
        return await self._answer("random")

    async def close(self) -> None:
        self.closed = True


class MemoryFavorites:
    def __init__(self) -> None:
        self.recipes: dict[RecipeId, Recipe] = {}

    async def is_favorite(self, id: RecipeId) -> bool:
        return id in self.recipes

    async def add(self, recipe: Recipe) -> None:
        id = recipe_id(recipe)
        assert id is not None
        self.recipes[id] = recipe

    async def remove(self, id: RecipeId) -> None:
        self.recipes.pop(id, None)

    async def list(self) -> list[Recipe]:
        return list(self.recipes.values())


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "cache.json"


@pytest.fixture
def store(cache_path: Path, clock: Clock) -> CacheStore:
    return CacheStore(cache_path, default_ttl=60, clock=clock)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


def make_fetcher(catalog: FakeCatalog, **overrides: Any) -> Fetcher:
    settings: dict[str, Any] = {
        "attempts": 2,
        "backoff": 0,
        "timeout": 1.0,
        "candidates": 3,
    }
    settings.update(overrides)
    fake: Any = catalog
    return Fetcher(fake, **settings)


@pytest.fixture
def fetcher(catalog: FakeCatalog) -> Fetcher:
    return make_fetcher(catalog)
