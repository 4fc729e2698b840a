from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    env: Env = Env.local
    log_level: str = "INFO"
    base_url: str = "https://www.themealdb.com/api/json/v1/1/"
    # None leaves the transport unbounded, the race strategy owns timing.
    http_timeout: float | None = None
    cache_path: Path = Path("recipe_cache.json")
    cache_ttl: float = Field(default=60 * 60 * 24, gt=0)
    retry_attempts: int = Field(default=2, ge=1)
    retry_backoff: float = Field(default=1.0, ge=0)
    ingredient_timeout: float = Field(default=5.0, gt=0)
    max_letters: int = Field(default=3, ge=1)
    related_limit: int = Field(default=3, ge=0)
    random_candidates: int = Field(default=3, ge=1)
    # How long shutdown waits on abandoned race losers before cancelling them.
    close_grace: float = Field(default=1.0, ge=0)
