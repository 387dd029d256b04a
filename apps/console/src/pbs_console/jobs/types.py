from __future__ import annotations

from dataclasses import dataclass

SNAPSHOT_MODE = "snapshot"


@dataclass(frozen=True)
class JobRecord:
    id: str
    target_id: str
    storage_id: str
    comment: str | None = None


@dataclass(frozen=True)
class SelectionState:
    selected: JobRecord | None = None

    @property
    def empty(self) -> bool:
        return self.selected is None


NO_SELECTION = SelectionState()


@dataclass(frozen=True)
class DispatchRequest:
    target_id: str
    storage_id: str
    mode: str = SNAPSHOT_MODE

    @classmethod
    def from_job(cls, job: JobRecord) -> DispatchRequest:
        return cls(target_id=job.target_id, storage_id=job.storage_id)

    def params(self) -> dict[str, str]:
        return {"storage": self.storage_id, "mode": self.mode}
