"""Run a single recipe explorer command.

    python main.py search <term>
    python main.py show <id>
    python main.py letters <letters>
    python main.py ingredient <ingredient>
    python main.py random
"""

import asyncio
import logging
import sys

from pydantic import ValidationError
from rich import print
from rich.logging import RichHandler

import config
from domain import services
from domain.cache import CacheStore
from domain.catalog import CatalogClient, CatalogError
from domain.fetch import Fetcher
from domain.models import Recipe, Signal, recipe_id


logger = logging.getLogger(__name__)


def print_recipes(recipes: list[Recipe]) -> None:
    if not recipes:
        print("No recipes found.")
    for i, recipe in enumerate(recipes, start=1):
        print(f"{i}. [{recipe_id(recipe)}] {recipe.get('strMeal', '')}")


def print_details(details: services.RecipeDetails) -> None:
    print(details.recipe)
    # Only known when the embedding session supplies a favorites collaborator.
    if details.is_favorite is not None:
        print("In favorites." if details.is_favorite else "Not in favorites.")
    if details.related:
        print("Related recipes")
        print_recipes(details.related)


async def run(
    command: str,
    args: list[str],
    cfg: config.Config,
    *,
    fetcher: Fetcher | None = None,
    favorites: services.Favorites | None = None,
) -> None:
    store = CacheStore.from_config(cfg)
    if fetcher is None:
        fetcher = Fetcher.from_config(CatalogClient.from_config(cfg), cfg)
    arg = " ".join(args)

    try:
        await services.startup(store)
        match command:
            case "search":
                print_recipes(
                    await services.search_recipes(arg, fetcher=fetcher, store=store)
                )
            case "show":
                details = await services.recipe_details(
                    arg,
                    fetcher=fetcher,
                    store=store,
                    favorites=favorites,
                    related_limit=cfg.related_limit,
                )
                if details is None:
                    print("The recipe was not found.")
                else:
                    print_details(details)
            case "letters":
                print_recipes(
                    await services.explore_by_letters(
                        arg,
                        fetcher=fetcher,
                        store=store,
                        max_letters=cfg.max_letters,
                    )
                )
            case "ingredient":
                result = await services.search_by_ingredient(
                    arg, fetcher=fetcher, store=store
                )
                match result:
                    case Signal.TIMEOUT:
                        print("Took too long.")
                    case Signal.FAILURE:
                        print("Something went wrong.")
                    case _:
                        print_recipes(result)
            case "random":
                details = await services.discover_random(
                    fetcher=fetcher, favorites=favorites
                )
                if details is None:
                    print("No recipe found.")
                else:
                    print_details(details)
            case _:
                print(__doc__)
    except (CatalogError, ValueError) as e:
        logger.error("Command %s failed: %s", command, e)
    finally:
        await fetcher.close()


def main(argv: list[str]) -> int:
    try:
        cfg = config.Config()
    except ValidationError as e:
        print(f"Invalid configuration. {e}")
        return 1

    logging.basicConfig(
        level=cfg.log_level,
        format="%(message)s",
        handlers=[RichHandler(show_path=cfg.env == config.Env.local)],
    )

    if not argv:
        print(__doc__)
        return 0

    asyncio.run(run(argv[0], argv[1:], cfg))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
