from __future__ import annotations

from dataclasses import dataclass
import logging

from pbs_console.keys.catalog import KeyCatalog, KeyRecord

logger = logging.getLogger(__name__)


class UnknownKey(LookupError):
    pass


class SelectionRequired(ValueError):
    pass


@dataclass(frozen=True)
class KeyOption:
    value: str
    label: str


class KeySelector:
    """Single-choice selection over the key catalog.

    The value of a selection is the key fingerprint, the label is its hint.
    """

    def __init__(self, catalog: KeyCatalog, *, allow_blank: bool = False) -> None:
        self._catalog = catalog
        self.allow_blank = allow_blank
        self._selected: KeyRecord | None = None
        self._seen_generation = catalog.generation

    def options(self) -> list[KeyOption]:
        return [KeyOption(value=record.fingerprint, label=record.hint) for record in self._catalog.list()]

    @property
    def selected(self) -> KeyRecord | None:
        self._reconcile()
        return self._selected

    @property
    def value(self) -> str | None:
        selected = self.selected
        return selected.fingerprint if selected is not None else None

    @property
    def label(self) -> str | None:
        selected = self.selected
        return selected.hint if selected is not None else None

    def select(self, fingerprint: str) -> KeyRecord:
        self._reconcile()
        record = self._catalog.get(fingerprint)
        if record is None:
            raise UnknownKey(f"No encryption key with fingerprint {fingerprint}")
        self._selected = record
        return record

    def clear(self) -> None:
        self._selected = None

    def is_valid(self) -> bool:
        return self.allow_blank or self.selected is not None

    def require(self) -> KeyRecord:
        selected = self.selected
        if selected is None:
            raise SelectionRequired("An encryption key must be selected")
        return selected

    async def reload(self) -> KeyRecord | None:
        await self._catalog.load()
        return self.selected

    def _reconcile(self) -> None:
        if self._catalog.generation == self._seen_generation:
            return
        self._seen_generation = self._catalog.generation

        if self._selected is None:
            return
        record = self._catalog.get(self._selected.fingerprint)
        if record is None:
            logger.info("selected key %s no longer listed; clearing selection", self._selected.fingerprint)
        self._selected = record
