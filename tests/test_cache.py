import json
from pathlib import Path

import pytest

from domain.cache import CacheStore


@pytest.mark.asyncio
async def test_init_missing_file_starts_empty(store: CacheStore) -> None:
    await store.init()
    assert len(store) == 0


@pytest.mark.parametrize(
    "contents",
    (
        "{not json",
        "[1, 2, 3]",
        '{"k": {"key": "k"}}',
    ),
)
@pytest.mark.asyncio
async def test_init_corrupt_file_starts_empty(
    cache_path: Path, store: CacheStore, contents: str
) -> None:
    cache_path.write_text(contents)
    await store.init()
    assert len(store) == 0


@pytest.mark.asyncio
async def test_put_is_written_through(
    cache_path: Path, clock, store: CacheStore
) -> None:
    await store.init()
    await store.put("search_soup", [{"idMeal": "1"}])

    reloaded = CacheStore(cache_path, default_ttl=60, clock=clock)
    await reloaded.init()
    entry = reloaded.get("search_soup")
    assert entry is not None
    assert entry.value == [{"idMeal": "1"}]
    assert entry.ttl == 60


@pytest.mark.asyncio
async def test_put_overwrites(store: CacheStore) -> None:
    await store.put("k", "old")
    await store.put("k", "new", ttl=5)
    entry = store.get("k")
    assert entry is not None
    assert (entry.value, entry.ttl) == ("new", 5)
    assert len(store) == 1


@pytest.mark.asyncio
async def test_put_normalises_to_json(store: CacheStore) -> None:
    entry = await store.put("k", {"ids": ("1", "2")})
    assert entry.value == {"ids": ["1", "2"]}


@pytest.mark.asyncio
async def test_put_rejects_non_json(cache_path: Path, store: CacheStore) -> None:
    with pytest.raises(TypeError):
        await store.put("k", object())
    assert "k" not in store
    assert not cache_path.exists()


@pytest.mark.asyncio
async def test_get_ignores_ttl(clock, store: CacheStore) -> None:
    await store.put("k", 1, ttl=10)
    clock.advance(11)
    entry = store.get("k")
    assert entry is not None
    assert not store.is_fresh(entry)


@pytest.mark.asyncio
async def test_entry_fresh_up_to_ttl(clock, store: CacheStore) -> None:
    entry = await store.put("k", 1, ttl=10)
    clock.advance(10)
    assert store.is_fresh(entry)
    clock.advance(0.5)
    assert not store.is_fresh(entry)


@pytest.mark.asyncio
async def test_evict_expired(cache_path: Path, clock, store: CacheStore) -> None:
    await store.put("short", 1, ttl=10)
    await store.put("long", 2, ttl=100)
    clock.advance(50)

    assert await store.evict_expired() == 1
    assert "short" not in store
    assert "long" in store

    on_disk = json.loads(cache_path.read_text())
    assert list(on_disk) == ["long"]


@pytest.mark.asyncio
async def test_unwritable_path_keeps_serving(tmp_path: Path, clock) -> None:
    path = tmp_path / "missing_dir" / "cache.json"
    store = CacheStore(path, default_ttl=60, clock=clock)

    await store.init()
    await store.put("k", [{"idMeal": "1"}])
    clock.advance(100)
    await store.put("other", 2)
    assert await store.evict_expired() == 1

    assert "k" not in store
    entry = store.get("other")
    assert entry is not None and entry.value == 2
    assert not path.exists()
