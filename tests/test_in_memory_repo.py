from collections.abc import Iterable
from datetime import timedelta

import pytest

from cache_repo.repos.in_memory import InMemoryCacheRepo


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def repo(clock: _Clock) -> InMemoryCacheRepo:
    return InMemoryCacheRepo(clock=clock, scan_count=2)


@pytest.mark.asyncio
async def test_get_missing_returns_none(repo: InMemoryCacheRepo) -> None:
    assert await repo.find_item("missing") is None


@pytest.mark.asyncio
async def test_item_expires_after_ttl(repo: InMemoryCacheRepo, clock: _Clock) -> None:
    await repo.save_item("k1", b"v1", timedelta(seconds=10))
    assert await repo.find_item("k1") == b"v1"

    clock.now += 10
    assert await repo.find_item("k1") is None


@pytest.mark.asyncio
async def test_remove_existing_and_missing(repo: InMemoryCacheRepo) -> None:
    await repo.save_item("k", b"v", None)
    await repo.remove_item("k")
    assert await repo.find_item("k") is None

    await repo.remove_item("k")
    assert await repo.find_item("k") is None


@pytest.mark.asyncio
async def test_rejects_invalid_arguments(repo: InMemoryCacheRepo) -> None:
    with pytest.raises(ValueError, match="key must not be empty"):
        await repo.find_item("")
    with pytest.raises(ValueError, match="ttl must be positive"):
        await repo.save_item("k", b"v", timedelta(0))
    with pytest.raises(ValueError, match="count must be positive"):
        _ = await repo.find_keys("*", count=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [1, 3, 6])
async def test_find_keys_matches_pattern_for_any_page_size(repo: InMemoryCacheRepo, count: int) -> None:
    for key in ("user:1", "user:2", "user:3", "order:1"):
        await repo.save_item(key, b"x", None)

    assert sorted(await repo.find_keys("user:*", count=count)) == ["user:1", "user:2", "user:3"]


@pytest.mark.asyncio
async def test_find_keys_skips_expired_and_resumes_from_cursor(repo: InMemoryCacheRepo, clock: _Clock) -> None:
    await repo.save_item("a", b"x", None)
    await repo.save_item("b", b"x", timedelta(seconds=1))
    await repo.save_item("c", b"x", None)
    await repo.save_item("d", b"x", None)

    clock.now += 5
    assert await repo.find_keys("*") == ["a", "c", "d"]
    assert await repo.find_keys("*", cursor=2) == ["c", "d"]


@pytest.mark.asyncio
async def test_delete_with_keyword_keeps_non_matching(repo: InMemoryCacheRepo) -> None:
    for key in ("user:1", "user:2", "order:1"):
        await repo.save_item(key, b"x", None)

    await repo.delete_with_keyword("user:*")

    assert await repo.find_keys("user:*") == []
    assert await repo.find_keys("order:*") == ["order:1"]


@pytest.mark.asyncio
async def test_delete_with_keys_ignores_absent_keys(repo: InMemoryCacheRepo) -> None:
    await repo.save_item("present", b"x", None)

    await repo.delete_with_keys(["absent", "present"])

    assert await repo.find_item("present") is None


@pytest.mark.asyncio
async def test_delete_without_ttl_keeps_expiring_keys(repo: InMemoryCacheRepo, clock: _Clock) -> None:
    await repo.save_item("tmp:a", b"x", None)
    await repo.save_item("tmp:b", b"x", timedelta(seconds=60))

    await repo.delete_without_ttl("tmp:*")

    assert await repo.find_item("tmp:a") is None
    assert await repo.find_item("tmp:b") == b"x"
    clock.now += 60
    assert await repo.find_item("tmp:b") is None


@pytest.mark.asyncio
async def test_close_is_noop(repo: InMemoryCacheRepo) -> None:
    await repo.save_item("k", b"v", None)
    await repo.close()
    assert await repo.find_item("k") == b"v"


class _RecordingRepo(InMemoryCacheRepo):
    def __init__(self) -> None:
        super().__init__(scan_count=1)
        self.events: list[str] = []

    async def _page(self, keys: list[str], pattern: str, cursor: int, count: int) -> list[str]:
        self.events.append(f"page {cursor}")
        return await super()._page(keys, pattern, cursor, count)

    async def delete_with_keys(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self.events.append(f"delete {','.join(keys)}")
        await super().delete_with_keys(keys)


@pytest.mark.asyncio
async def test_delete_with_keyword_deletes_each_page_before_the_next() -> None:
    repo = _RecordingRepo()
    await repo.save_item("a:1", b"x", None)
    await repo.save_item("a:2", b"x", None)

    await repo.delete_with_keyword("a:*")

    assert repo.events == ["page 0", "delete a:1", "page 1", "delete a:2"]


@pytest.mark.asyncio
async def test_scan_walks_one_snapshot_of_the_keyspace() -> None:
    repo = _RecordingRepo()
    for key in ("b:1", "b:2", "b:3"):
        await repo.save_item(key, b"x", None)

    async def save_during_scan(keys: Iterable[str]) -> None:
        await InMemoryCacheRepo.delete_with_keys(repo, keys)
        await repo.save_item("b:4", b"x", None)

    repo.delete_with_keys = save_during_scan  # type: ignore[method-assign]
    await repo.delete_with_keyword("b:*")

    # deleting b:1 does not shift b:2 out of the next page, and b:4 is not in the snapshot
    assert await repo.find_keys("*") == ["b:4"]
