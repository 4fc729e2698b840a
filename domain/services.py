import logging
from typing import Awaitable, Callable, Protocol, TypeVar

from domain.cache import CacheStore
from domain.catalog import CatalogError
from domain.fetch import Fetcher
from domain.models import CATEGORY_FIELD, Recipe, RecipeId, Signal, recipe_id


logger = logging.getLogger(__name__)

V = TypeVar("V")


class Favorites(Protocol):
    async def is_favorite(self, id: RecipeId) -> bool: ...

    async def add(self, recipe: Recipe) -> None: ...

    async def remove(self, id: RecipeId) -> None: ...

    async def list(self) -> list[Recipe]: ...


class RecipeNotFound(Exception):
    pass


class SearchUnavailable(Exception):
    """Carries a race signal out of a producer so it is never cached."""

    def __init__(self, signal: Signal) -> None:
        super().__init__(signal.value)
        self.signal = signal


class RecipeDetails:
    def __init__(
        self,
        *,
        recipe: Recipe,
        is_favorite: bool | None,
        related: list[Recipe],
    ) -> None:
        self.recipe = recipe
        self.is_favorite = is_favorite
        self.related = related

    def __repr__(self) -> str:
        return f"<RecipeDetails(id={recipe_id(self.recipe)})>"


async def get_or_fetch(
    key: str,
    producer: Callable[[], Awaitable[V]],
    *,
    store: CacheStore,
    ttl: float | None = None,
) -> V:
    """Serve a fresh cached value for `key`, else call `producer` once and cache it.

    A failing producer caches nothing and its exception reaches the caller as is.
    """
    entry = store.get(key)
    if entry is not None and store.is_fresh(entry):
        logger.debug("Cache hit %s", key)
        return entry.value

    logger.debug("Cache miss %s", key)
    value = await producer()
    entry = await store.put(key, value, ttl)
    return entry.value


async def startup(store: CacheStore) -> None:
    await store.init()
    await store.evict_expired()


async def search_recipes(
    term: str,
    *,
    fetcher: Fetcher,
    store: CacheStore,
) -> list[Recipe]:
    term = term.strip()
    if not term:
        raise ValueError("Search term cannot be empty.")
    return await get_or_fetch(
        f"search_{term.lower()}",
        lambda: fetcher.client.search_by_name(term),
        store=store,
    )


async def related_recipes(
    recipe: Recipe,
    *,
    fetcher: Fetcher,
    limit: int,
) -> list[Recipe]:
    category = recipe.get(CATEGORY_FIELD)
    if not category:
        return []
    try:
        same_category = await fetcher.client.filter_by_category(category)
    except CatalogError as e:
        logger.error("Could not fetch recipes related to %s: %r", category, e)
        return []
    id = recipe_id(recipe)
    return [r for r in same_category if recipe_id(r) != id][:limit]


async def recipe_details(
    id: RecipeId,
    *,
    fetcher: Fetcher,
    store: CacheStore,
    favorites: Favorites | None = None,
    related_limit: int,
) -> RecipeDetails | None:
    id = id.strip()
    if not id:
        raise ValueError("Recipe id cannot be empty.")

    async def produce() -> Recipe:
        recipe = await fetcher.get_with_retry(id)
        if recipe is None:
            raise RecipeNotFound(id)
        return recipe

    try:
        recipe = await get_or_fetch(f"recipe_{id}", produce, store=store)
    except RecipeNotFound:
        logger.info("Recipe %s not found.", id)
        return None

    is_favorite = None if favorites is None else await favorites.is_favorite(id)
    related = await related_recipes(recipe, fetcher=fetcher, limit=related_limit)
    return RecipeDetails(recipe=recipe, is_favorite=is_favorite, related=related)


def unique_letters(letters: str, max_letters: int) -> list[str]:
    distinct = dict.fromkeys(c for c in letters.lower() if not c.isspace())
    return list(distinct)[:max_letters]


async def explore_by_letters(
    letters: str,
    *,
    fetcher: Fetcher,
    store: CacheStore,
    max_letters: int,
) -> list[Recipe]:
    chosen = unique_letters(letters, max_letters)
    if not chosen:
        raise ValueError("Provide at least one letter.")
    return await get_or_fetch(
        f"letters_{''.join(sorted(chosen))}",
        lambda: fetcher.search_by_letters(chosen),
        store=store,
    )


async def search_by_ingredient(
    ingredient: str,
    *,
    fetcher: Fetcher,
    store: CacheStore,
    timeout: float | None = None,
) -> list[Recipe] | Signal:
    ingredient = ingredient.strip()
    if not ingredient:
        raise ValueError("Ingredient cannot be empty.")

    async def produce() -> list[Recipe]:
        result = await fetcher.search_with_timeout(ingredient, timeout)
        if isinstance(result, Signal):
            raise SearchUnavailable(result)
        return result

    try:
        return await get_or_fetch(
            f"ingredient_{ingredient.lower()}", produce, store=store
        )
    except SearchUnavailable as e:
        return e.signal


async def discover_random(
    *,
    fetcher: Fetcher,
    favorites: Favorites | None = None,
) -> RecipeDetails | None:
    recipe = await fetcher.discover_random()
    if recipe is None:
        return None
    id = recipe_id(recipe)
    is_favorite = (
        None if favorites is None or id is None else await favorites.is_favorite(id)
    )
    return RecipeDetails(recipe=recipe, is_favorite=is_favorite, related=[])


async def toggle_favorite(recipe: Recipe, *, favorites: Favorites) -> bool:
    """Add or remove `recipe` from favorites. Returns whether it is now a favorite."""
    id = recipe_id(recipe)
    if id is None:
        raise ValueError("Recipe has no id.")
    if await favorites.is_favorite(id):
        await favorites.remove(id)
        return False
    await favorites.add(recipe)
    return True

