import asyncio
import gc
import logging
from typing import Any

import pytest

from pbs_console.fingerprint import fingerprint, format_fingerprint
from pbs_console.keys.catalog import CatalogLoadFailed, KeyCatalog, KeyRecord
from pbs_console.remote.client import RemoteCallError

FP_ALPHA = fingerprint(b"alpha-key")
FP_BRAVO = fingerprint(b"bravo-key")
FP_CHARLIE = fingerprint(b"charlie-key")


class GatedKeyListing:
    """Returns queued payloads, each one only after its gate is opened."""

    def __init__(self, *payloads: list[dict[str, Any]]) -> None:
        self._payloads = list(payloads)
        self.gates = [asyncio.Event() for _ in payloads]
        self.calls = 0

    async def list_encryption_keys(self) -> list[dict[str, Any]]:
        index = self.calls
        self.calls += 1
        await self.gates[index].wait()
        return self._payloads[index]


@pytest.mark.asyncio
async def test_catalog_is_empty_until_loaded(backup_server) -> None:
    catalog = KeyCatalog(backup_server)

    assert catalog.list() == ()
    assert not catalog.loaded
    assert backup_server.key_calls == 0


@pytest.mark.asyncio
async def test_load_sorts_records_by_hint(backup_server) -> None:
    backup_server.keys = [
        {"hint": "offsite", "fingerprint": FP_CHARLIE},
        {"hint": "daily", "fingerprint": FP_ALPHA},
        {"hint": "monthly", "fingerprint": FP_BRAVO},
    ]
    catalog = KeyCatalog(backup_server)

    loaded = await catalog.load()

    assert [record.hint for record in catalog.list()] == ["daily", "monthly", "offsite"]
    assert loaded == frozenset(catalog.list())
    assert catalog.get(FP_BRAVO) == KeyRecord(hint="monthly", fingerprint=FP_BRAVO)
    assert catalog.generation == 1
    assert len(catalog) == 3


@pytest.mark.asyncio
async def test_load_breaks_hint_ties_by_fingerprint(backup_server) -> None:
    first, second = sorted([FP_ALPHA, FP_BRAVO])
    backup_server.keys = [
        {"hint": "shared", "fingerprint": second},
        {"hint": "shared", "fingerprint": first},
    ]
    catalog = KeyCatalog(backup_server)

    await catalog.load()

    assert [record.fingerprint for record in catalog.list()] == [first, second]


@pytest.mark.asyncio
async def test_load_normalizes_colon_fingerprints_and_missing_hint(backup_server) -> None:
    backup_server.keys = [{"fingerprint": format_fingerprint(FP_ALPHA).upper(), "hint": None}]
    catalog = KeyCatalog(backup_server)

    await catalog.load()

    assert catalog.list() == (KeyRecord(hint="", fingerprint=FP_ALPHA),)


@pytest.mark.asyncio
async def test_failed_first_load_leaves_catalog_empty(backup_server) -> None:
    backup_server.key_error = "permission check failed"
    catalog = KeyCatalog(backup_server)

    with pytest.raises(CatalogLoadFailed, match="permission check failed"):
        await catalog.load()

    assert catalog.list() == ()
    assert not catalog.loaded


@pytest.mark.asyncio
async def test_failed_reload_keeps_previous_contents(backup_server) -> None:
    backup_server.keys = [{"hint": "daily", "fingerprint": FP_ALPHA}]
    catalog = KeyCatalog(backup_server)
    await catalog.load()
    before = catalog.list()

    backup_server.key_error = "connection refused"
    with pytest.raises(CatalogLoadFailed):
        await catalog.load()

    assert catalog.list() == before
    assert catalog.generation == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        [{"hint": "daily"}],
        [{"hint": "daily", "fingerprint": "not-a-digest"}],
        [{"hint": 7, "fingerprint": FP_ALPHA}],
        ["daily"],
        [
            {"hint": "daily", "fingerprint": FP_ALPHA},
            {"hint": "again", "fingerprint": FP_ALPHA},
        ],
    ],
)
async def test_malformed_listing_is_rejected_without_partial_update(backup_server, payload) -> None:
    backup_server.keys = [{"hint": "weekly", "fingerprint": FP_CHARLIE}]
    catalog = KeyCatalog(backup_server)
    await catalog.load()

    backup_server.keys = [{"hint": "zulu", "fingerprint": FP_BRAVO}, *payload]
    with pytest.raises(CatalogLoadFailed, match="Invalid key listing payload"):
        await catalog.load()

    assert catalog.list() == (KeyRecord(hint="weekly", fingerprint=FP_CHARLIE),)


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_request() -> None:
    listing = GatedKeyListing([{"hint": "daily", "fingerprint": FP_ALPHA}])
    catalog = KeyCatalog(listing)

    first = asyncio.create_task(catalog.load())
    second = asyncio.create_task(catalog.load())
    await asyncio.sleep(0)
    listing.gates[0].set()

    results = await asyncio.gather(first, second)

    assert listing.calls == 1
    assert results[0] == results[1]
    assert catalog.generation == 1


@pytest.mark.asyncio
async def test_readers_never_see_a_mix_of_two_loads() -> None:
    old = [{"hint": f"old-{index}", "fingerprint": fingerprint(f"old-{index}".encode())} for index in range(5)]
    new = [{"hint": f"new-{index}", "fingerprint": fingerprint(f"new-{index}".encode())} for index in range(5)]
    listing = GatedKeyListing(old, new)
    catalog = KeyCatalog(listing)

    listing.gates[0].set()
    await catalog.load()
    old_view = catalog.list()

    pending = asyncio.create_task(catalog.load())
    await asyncio.sleep(0)
    assert catalog.list() == old_view

    listing.gates[1].set()
    await pending

    hints = {record.hint.split("-")[0] for record in catalog.list()}
    assert hints == {"new"}
    assert len(catalog.list()) == 5


@pytest.mark.asyncio
async def test_abandoned_load_still_completes() -> None:
    listing = GatedKeyListing([{"hint": "daily", "fingerprint": FP_ALPHA}])
    catalog = KeyCatalog(listing)

    waiter = asyncio.create_task(catalog.load())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    listing.gates[0].set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert catalog.list() == (KeyRecord(hint="daily", fingerprint=FP_ALPHA),)



class FailingGatedListing:
    def __init__(self) -> None:
        self.gate = asyncio.Event()

    async def list_encryption_keys(self) -> list[dict[str, Any]]:
        await self.gate.wait()
        raise RemoteCallError("listing unavailable")


@pytest.mark.asyncio
async def test_abandoned_failing_load_is_not_reported_as_unretrieved(
    caplog: pytest.LogCaptureFixture,
) -> None:
    listing = FailingGatedListing()
    catalog = KeyCatalog(listing)

    waiter = asyncio.create_task(catalog.load())
    await asyncio.sleep(0)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    with caplog.at_level(logging.ERROR, logger="asyncio"):
        listing.gate.set()
        for _ in range(5):
            await asyncio.sleep(0)
        gc.collect()

    assert "never retrieved" not in caplog.text
    assert catalog.list() == ()
    assert not catalog.loaded
