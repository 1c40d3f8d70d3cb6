import pytest

from conftest import START_TIME
from repositories import MergedSignalRecord, SignalRepository, WatchlistReader, encode_cursor
from repositories.signals import record_key
from utils.errors import InvalidCursorError


async def _seed(signals, keys, sources=None):
    for key in keys:
        await signals.set_record(MergedSignalRecord(
            key=key,
            category=2,
            count=1,
            event=f"{key} event",
            updated_at=START_TIME,
            first_seen_at=START_TIME,
            sources=(sources or {}).get(key, ["alice"]),
        ))


async def _read_all(reader, page_size, watchlist=None):
    pages = []
    cursor = None
    while True:
        page = await reader.get_page(cursor=cursor, page_size=page_size, watchlist=watchlist)
        pages.append([record.key for record in page.items])
        cursor = page.next_cursor
        if cursor is None:
            return pages
        assert len(pages) < 50, "cursor chain did not terminate"


@pytest.mark.asyncio
async def test_five_keys_page_size_two_yields_three_pages(store):
    signals = SignalRepository(store)
    await _seed(signals, ["EEE", "AAA", "CCC", "BBB", "DDD"])

    pages = await _read_all(WatchlistReader(store, signals), page_size=2)

    assert pages == [["AAA", "BBB"], ["CCC", "DDD"], ["EEE"]]


@pytest.mark.asyncio
async def test_exact_multiple_has_no_trailing_empty_page(store):
    signals = SignalRepository(store)
    await _seed(signals, ["A1", "A2", "A3", "A4"])

    pages = await _read_all(WatchlistReader(store, signals), page_size=2)

    assert pages == [["A1", "A2"], ["A3", "A4"]]


@pytest.mark.asyncio
async def test_empty_store_returns_empty_page_without_cursor(store):
    page = await WatchlistReader(store).get_page(page_size=10)

    assert page.items == []
    assert page.next_cursor is None
    assert page.to_dict() == {"items": [], "nextCursor": None}


@pytest.mark.asyncio
async def test_watchlist_filter_returns_each_matching_key_once(store):
    signals = SignalRepository(store)
    await _seed(
        signals,
        ["K1", "K2", "K3", "K4", "K5", "K6"],
        sources={"K2": ["bob"], "K4": ["carol", "Bob"], "K6": ["bob"]},
    )

    pages = await _read_all(WatchlistReader(store, signals), page_size=2, watchlist=["@bob"])

    flattened = [key for page in pages for key in page]
    assert flattened == ["K2", "K4", "K6"]


@pytest.mark.asyncio
async def test_unreadable_records_are_skipped(store):
    signals = SignalRepository(store)
    await _seed(signals, ["GOOD1", "GOOD2"])
    await store.set(record_key("BAD"), {"key": "BAD"})

    pages = await _read_all(WatchlistReader(store, signals), page_size=5)

    assert pages == [["GOOD1", "GOOD2"]]


@pytest.mark.asyncio
async def test_cursor_for_missing_key_continues_after_it(store):
    signals = SignalRepository(store)
    await _seed(signals, ["AAA", "CCC"])

    page = await WatchlistReader(store, signals).get_page(cursor=encode_cursor("BBB"), page_size=5)

    assert [record.key for record in page.items] == ["CCC"]


@pytest.mark.asyncio
@pytest.mark.parametrize("cursor", ["!!!", "%%%%", "/w=="])
async def test_invalid_cursor_raises(store, cursor):
    with pytest.raises(InvalidCursorError):
        await WatchlistReader(store).get_page(cursor=cursor)


@pytest.mark.asyncio
async def test_latest_report_and_highlight_passthrough(store):
    reader = WatchlistReader(store)

    assert await reader.get_latest_report() is None
    assert await reader.get_highlight() is None

    await reader.signals.save_report({"run_id": "r1", "records": []})
    assert (await reader.get_latest_report())["run_id"] == "r1"
