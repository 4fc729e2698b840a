"""Resilient ways of asking the catalog.

- `get_with_retry`: bounded retry with a fixed backoff.
- `fan_out` / `search_by_letters`: join-all over concurrent calls, de-duplicated.
- `search_with_timeout`: the call races a timer.
- `discover_random`: several calls race each other.

Race losers are abandoned, not cancelled. They run to completion and their
results are dropped. Only `close` cancels the ones still running after a grace
period, so shutdown never waits on a stalled call.
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Iterable, Self

import config
from domain.catalog import CatalogClient, CatalogError
from domain.models import Recipe, Signal, recipe_id


logger = logging.getLogger(__name__)


def _fill(slot: asyncio.Future[Any], value: Any) -> None:
    # Single assignment, later writes are dropped.
    if not slot.done():
        slot.set_result(value)


def _settle(slot: asyncio.Future[Any], task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        _fill(slot, Signal.FAILURE)
        return
    exc = task.exception()
    if exc is not None:
        if not slot.done():
            logger.error("Raced fetch failed: %r", exc)
        _fill(slot, Signal.FAILURE)
        return
    _fill(slot, task.result())


def dedupe(recipes: Iterable[Recipe]) -> list[Recipe]:
    """First recipe seen per id, in order. Records without an id are dropped."""
    seen: dict[str, Recipe] = {}
    for recipe in recipes:
        id = recipe_id(recipe)
        if id is None:
            logger.debug("Dropping recipe without an id: %r", recipe)
            continue
        seen.setdefault(id, recipe)
    return list(seen.values())


class Fetcher:
    def __init__(
        self,
        client: CatalogClient,
        *,
        attempts: int,
        backoff: float,
        timeout: float,
        candidates: int,
        grace: float = 0.0,
    ) -> None:
        self.client = client
        self.attempts = attempts
        self.backoff = backoff
        self.timeout = timeout
        self.candidates = candidates
        self.grace = grace
        # Strong references to raced tasks until they finish, losers included.
        self.in_flight: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_config(cls, client: CatalogClient, cfg: config.Config) -> Self:
        return cls(
            client,
            attempts=cfg.retry_attempts,
            backoff=cfg.retry_backoff,
            timeout=cfg.ingredient_timeout,
            candidates=cfg.random_candidates,
            grace=cfg.close_grace,
        )

    async def get_with_retry(
        self,
        id: str,
        attempts: int | None = None,
    ) -> Recipe | None:
        attempts = self.attempts if attempts is None else attempts
        if attempts < 1:
            raise ValueError("Need at least one attempt.")

        while True:
            try:
                meals = await self.client.lookup_by_id(id)
            except CatalogError as e:
                if attempts > 1:
                    logger.warning(
                        "Lookup of %s failed, %d attempts left: %r", id, attempts - 1, e
                    )
                    await asyncio.sleep(self.backoff)
                    attempts -= 1
                    continue
                logger.error("Cannot find recipe %s, out of attempts: %r", id, e)
                return None
            return meals[0] if meals else None

    async def fan_out(
        self,
        keys: Iterable[str],
        fetch: Callable[[str], Awaitable[list[Recipe]]],
    ) -> list[Recipe]:
        distinct = list(dict.fromkeys(keys))

        async def partial(key: str) -> list[Recipe]:
            try:
                return await fetch(key)
            except CatalogError as e:
                logger.error("Fetch for %r failed, skipping: %r", key, e)
                return []

        results = await asyncio.gather(*(partial(key) for key in distinct))
        return dedupe(recipe for result in results for recipe in result)

    async def search_by_letters(self, letters: Iterable[str]) -> list[Recipe]:
        return await self.fan_out(letters, self.client.search_by_letter)

    async def _race(
        self,
        coros: list[Awaitable[Any]],
        *,
        timeout: float | None = None,
    ) -> Any:
        loop = asyncio.get_running_loop()
        slot: asyncio.Future[Any] = loop.create_future()

        for coro in coros:
            task = asyncio.ensure_future(coro)
            self.in_flight.add(task)
            task.add_done_callback(self.in_flight.discard)
            task.add_done_callback(functools.partial(_settle, slot))

        timer = None
        if timeout is not None:
            timer = loop.call_later(timeout, _fill, slot, Signal.TIMEOUT)

        try:
            return await slot
        finally:
            if timer is not None:
                timer.cancel()

    async def search_with_timeout(
        self,
        ingredient: str,
        timeout: float | None = None,
    ) -> list[Recipe] | Signal:
        timeout = self.timeout if timeout is None else timeout
        result = await self._race(
            [self.client.filter_by_ingredient(ingredient)], timeout=timeout
        )
        if result is Signal.TIMEOUT:
            logger.warning("Search for %r took longer than %ss.", ingredient, timeout)
        return result

    async def discover_random(self, n: int | None = None) -> Recipe | None:
        n = self.candidates if n is None else n
        if n < 1:
            raise ValueError("Need at least one candidate.")
        result = await self._race([self.client.random_pick() for _ in range(n)])
        if isinstance(result, Signal) or not result:
            return None
        return result[0]

    async def close(self) -> None:
        pending = set(self.in_flight)
        if pending and self.grace > 0:
            _, pending = await asyncio.wait(pending, timeout=self.grace)
        for task in pending:
            task.cancel()
        if pending:
            logger.info("Cancelled %d unfinished fetches on close.", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        await self.client.close()
