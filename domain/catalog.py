"""Client for the remote recipe catalog (TheMealDB JSON api).

Knows how to ask, never how resiliently: no retries and no timeouts live here.
"""

import logging
from typing import Any, Self

import httpx

import config
from domain.models import Recipe


logger = logging.getLogger(__name__)


class CatalogError(Exception):
    pass


class TransportFailure(CatalogError):
    """The request did not complete or the service answered with a bad status."""


class DecodeFailure(CatalogError):
    """The service answered but the body is not the expected json shape."""


def catalog_client_factory(
    base_url: str,
    timeout: float | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        headers={"Accept": "application/json"},
        timeout=timeout,
    )


class CatalogClient:
    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self.http_client = http_client

    @classmethod
    def from_config(cls, cfg: config.Config) -> Self:
        return cls(catalog_client_factory(cfg.base_url, cfg.http_timeout))

    async def _meals(
        self,
        path: str,
        params: dict[str, str] | None = None,
    ) -> list[Recipe]:
        try:
            resp = await self.http_client.get(path, params=params)
        except httpx.HTTPError as e:
            raise TransportFailure(f"{path} {params}: {e!r}") from e

        if not resp.is_success:
            raise TransportFailure(f"{path} {params}: status {resp.status_code}")

        try:
            data: Any = resp.json()
        except ValueError as e:
            raise DecodeFailure(f"{path} {params}: body is not json") from e

        if not isinstance(data, dict):
            raise DecodeFailure(f"{path} {params}: expected an object, got {data!r}")

        meals = data.get("meals")
        if meals is None:
            return []
        if not isinstance(meals, list):
            raise DecodeFailure(f"{path} {params}: 'meals' is not a list")

        logger.debug("%s %s -> %d meals", path, params, len(meals))
        return meals

    async def search_by_name(self, term: str) -> list[Recipe]:
        return await self._meals("search.php", {"s": term})

    async def lookup_by_id(self, id: str) -> list[Recipe]:
        return await self._meals("lookup.php", {"i": id})

    async def search_by_letter(self, letter: str) -> list[Recipe]:
        return await self._meals("search.php", {"f": letter})

    async def filter_by_ingredient(self, term: str) -> list[Recipe]:
        return await self._meals("filter.php", {"i": term})

    async def filter_by_category(self, term: str) -> list[Recipe]:
        return await self._meals("filter.php", {"c": term})

    async def random_pick(self) -> list[Recipe]:
        return await self._meals("random.php")

    async def close(self) -> None:
        await self.http_client.aclose()
