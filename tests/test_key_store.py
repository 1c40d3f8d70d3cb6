import pytest

from database import get_session
from database.models import CacheEntry
from utils.errors import CorruptEntryError


@pytest.mark.asyncio
async def test_set_get_roundtrip_and_delete(store):
    await store.set("users/ids", ["u1", "u2"])

    assert await store.get("users/ids") == ["u1", "u2"]
    assert await store.delete("users/ids") is True
    assert await store.get("users/ids") is None
    assert await store.delete("users/ids") is False


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(store, clock):
    await store.set("enrichment/tokens/WIF", "report", ttl=300)

    clock.advance(299)
    assert await store.get("enrichment/tokens/WIF") == "report"

    clock.advance(2)
    assert await store.get("enrichment/tokens/WIF") is None


@pytest.mark.asyncio
async def test_zero_ttl_never_expires(store, clock):
    await store.set("signals/report", {"records": []}, ttl=0)

    clock.advance(10 ** 9)

    assert await store.get("signals/report") == {"records": []}


@pytest.mark.asyncio
async def test_update_reads_modifies_and_writes(store):
    await store.set("counter", 1)

    written = await store.update("counter", lambda value: value + 1)

    assert written == 2
    assert await store.get("counter") == 2


@pytest.mark.asyncio
async def test_update_returning_none_leaves_key_untouched(store):
    await store.set("counter", 5)

    assert await store.update("counter", lambda value: None) is None
    assert await store.get("counter") == 5


@pytest.mark.asyncio
async def test_update_rolls_back_when_fn_raises(store):
    await store.set("counter", 5)

    def explode(value):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await store.update("counter", explode)
    assert await store.get("counter") == 5


@pytest.mark.asyncio
async def test_corrupt_json_raises_unless_ignored(store):
    async with get_session() as session:
        session.add(CacheEntry(key="broken", value="{not json"))

    with pytest.raises(CorruptEntryError):
        await store.get("broken")

    written = await store.update("broken", lambda value: {"fixed": value is None}, ignore_corrupt=True)
    assert written == {"fixed": True}
    assert await store.get("broken") == {"fixed": True}


@pytest.mark.asyncio
async def test_scan_is_ordered_prefixed_and_skips_expired(store, clock):
    await store.set("signals/records/B", 2)
    await store.set("signals/records/A", 1)
    await store.set("signals/records/C", 3, ttl=10)
    await store.set("signals/report", "not a record")
    clock.advance(20)

    keys = [key for key, _ in await store.scan_raw("signals/records/")]
    after_a = [key for key, _ in await store.scan_raw("signals/records/", after="signals/records/A")]

    assert keys == ["signals/records/A", "signals/records/B"]
    assert after_a == ["signals/records/B"]


@pytest.mark.asyncio
async def test_purge_expired_removes_rows(store, clock):
    await store.set("short", 1, ttl=5)
    await store.set("long", 2, ttl=500)
    clock.advance(10)

    assert await store.purge_expired() == 1
    assert await store.get("long") == 2
