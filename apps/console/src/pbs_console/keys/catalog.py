from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any

from pbs_console.fingerprint import normalize_fingerprint
from pbs_console.remote.client import KeyListingEndpoint, RemoteCallError

logger = logging.getLogger(__name__)


class CatalogLoadFailed(RuntimeError):
    pass


@dataclass(frozen=True)
class KeyRecord:
    hint: str
    fingerprint: str


def _parse_record(item: Any) -> KeyRecord:
    if not isinstance(item, dict):
        raise CatalogLoadFailed("Invalid key listing payload: entry is not an object")

    raw_fingerprint = item.get("fingerprint")
    if not isinstance(raw_fingerprint, str):
        raise CatalogLoadFailed("Invalid key listing payload: missing fingerprint")
    try:
        fingerprint = normalize_fingerprint(raw_fingerprint)
    except ValueError as exc:
        raise CatalogLoadFailed(f"Invalid key listing payload: {exc}") from exc

    hint = item.get("hint")
    if hint is None:
        hint = ""
    if not isinstance(hint, str):
        raise CatalogLoadFailed("Invalid key listing payload: hint must be a string")

    return KeyRecord(hint=hint, fingerprint=fingerprint)


class KeyCatalog:
    """Encryption keys known to the server, sorted by hint.

    Contents are replaced wholesale by ``load``; readers only ever see the
    tuple from one completed load. Loads issued while another is in flight
    join the pending one instead of starting a second request.
    """

    def __init__(self, endpoint: KeyListingEndpoint) -> None:
        self._endpoint = endpoint
        self._records: tuple[KeyRecord, ...] = ()
        self._generation = 0
        self._pending: asyncio.Future[frozenset[KeyRecord]] | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loaded(self) -> bool:
        return self._generation > 0

    def list(self) -> tuple[KeyRecord, ...]:
        return self._records

    def get(self, fingerprint: str) -> KeyRecord | None:
        for record in self._records:
            if record.fingerprint == fingerprint:
                return record
        return None

    def __len__(self) -> int:
        return len(self._records)

    async def load(self) -> frozenset[KeyRecord]:
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._fetch())
            self._pending.add_done_callback(self._clear_pending)
        else:
            logger.debug("key catalog load already in flight; joining it")

        # a caller that gives up must not abort the shared fetch
        return await asyncio.shield(self._pending)

    def _clear_pending(self, future: asyncio.Future[frozenset[KeyRecord]]) -> None:
        if self._pending is future:
            self._pending = None
        if not future.cancelled():
            # marks a failure as retrieved when every waiter has gone
            future.exception()

    async def _fetch(self) -> frozenset[KeyRecord]:
        try:
            payload = await self._endpoint.list_encryption_keys()
        except RemoteCallError as exc:
            logger.warning("key catalog load failed: %s", exc.reason)
            raise CatalogLoadFailed(exc.reason) from exc

        if not isinstance(payload, list):
            raise CatalogLoadFailed("Invalid key listing payload: expected a list")

        records = [_parse_record(item) for item in payload]

        seen: set[str] = set()
        for record in records:
            if record.fingerprint in seen:
                raise CatalogLoadFailed(
                    f"Invalid key listing payload: duplicate fingerprint {record.fingerprint}"
                )
            seen.add(record.fingerprint)

        ordered = tuple(sorted(records, key=lambda record: (record.hint, record.fingerprint)))
        self._records = ordered
        self._generation += 1
        logger.info("key catalog loaded: %d keys (generation %d)", len(ordered), self._generation)
        return frozenset(ordered)
