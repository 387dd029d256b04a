from __future__ import annotations

from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from pbs_console.jobs.types import JobRecord
from pbs_console.models import BackupJobRow


class JobRepository(Protocol):
    def list_jobs(self) -> Sequence[JobRecord]: ...

    def get_many(self, job_ids: Sequence[str]) -> list[JobRecord]: ...

    def add(self, job: JobRecord) -> JobRecord: ...


def _to_record(row: BackupJobRow) -> JobRecord:
    return JobRecord(
        id=row.id,
        target_id=row.target_id,
        storage_id=row.storage_id,
        comment=row.comment,
    )


class SqlJobRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_jobs(self) -> list[JobRecord]:
        with Session(self._engine) as session:
            rows = session.scalars(
                select(BackupJobRow).order_by(BackupJobRow.created_at.asc(), BackupJobRow.id.asc())
            ).all()
            return [_to_record(row) for row in rows]

    def get_many(self, job_ids: Sequence[str]) -> list[JobRecord]:
        """Look up jobs by id, keeping the caller's order and skipping unknown ids."""
        if not job_ids:
            return []

        with Session(self._engine) as session:
            rows = session.scalars(select(BackupJobRow).where(BackupJobRow.id.in_(list(job_ids)))).all()
            by_id = {row.id: _to_record(row) for row in rows}

        return [by_id[job_id] for job_id in job_ids if job_id in by_id]

    def add(self, job: JobRecord) -> JobRecord:
        with Session(self._engine) as session:
            if session.get(BackupJobRow, job.id) is not None:
                raise ValueError(f"backup job {job.id} already exists")
            session.add(
                BackupJobRow(
                    id=job.id,
                    target_id=job.target_id,
                    storage_id=job.storage_id,
                    comment=job.comment,
                )
            )
            session.commit()
        return job
