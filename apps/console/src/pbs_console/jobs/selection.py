from __future__ import annotations

import logging
from typing import Protocol, Sequence

from pbs_console.jobs.types import NO_SELECTION, JobRecord, SelectionState

logger = logging.getLogger(__name__)


class Toggleable(Protocol):
    def set_enabled(self, enabled: bool) -> None: ...


class JobSelectionController:
    """Tracks the single selected job and gates the dispatch controls.

    Each selection-change notification produces exactly one transition, and
    bound controls are toggled before ``on_selection_change`` returns.
    Notifications carrying several records collapse to the first one.
    """

    def __init__(self) -> None:
        self._state = NO_SELECTION
        self._controls: list[Toggleable] = []

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def dispatch_enabled(self) -> bool:
        return not self._state.empty

    def bind(self, control: Toggleable) -> None:
        self._controls.append(control)
        control.set_enabled(self.dispatch_enabled)

    def on_selection_change(self, records: Sequence[JobRecord]) -> SelectionState:
        if not records:
            state = NO_SELECTION
        else:
            if len(records) > 1:
                logger.warning(
                    "single-select controller received %d records; keeping %s",
                    len(records),
                    records[0].id,
                )
            state = SelectionState(selected=records[0])

        self._state = state
        enabled = self.dispatch_enabled
        for control in self._controls:
            control.set_enabled(enabled)

        logger.debug(
            "job selection -> %s (dispatch %s)",
            state.selected.id if state.selected is not None else "none",
            "enabled" if enabled else "disabled",
        )
        return state

    def clear(self) -> SelectionState:
        return self.on_selection_change(())
