from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from pbs_console.config import get_settings
from pbs_console.console import Console, build_console
from pbs_console.db import get_engine
from pbs_console.fingerprint import fingerprint, format_fingerprint, normalize_fingerprint
from pbs_console.jobs.repository import JobRepository, SqlJobRepository
from pbs_console.jobs.types import JobRecord, SelectionState
from pbs_console.keys.catalog import CatalogLoadFailed, KeyRecord
from pbs_console.keys.selector import KeySelector, UnknownKey
from pbs_console.log import configure_logging
from pbs_console.media import MediaRemoval
from pbs_console.outcome import Failure, FailureKind

app = FastAPI(title="Backup Console API", version="0.1.0")


class KeySelectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fingerprint: str | None = None


class JobCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, max_length=64)
    target_id: str = Field(pattern=r"^\d{1,9}$")
    storage_id: str = Field(min_length=1, max_length=64)
    comment: str | None = None


class JobSelectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    job_ids: list[str] = Field(default_factory=list)


class MediaRemoveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str = ""
    force: bool = False


@app.on_event("startup")
async def startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    get_engine()
    app.state.console = build_console(settings)


@app.on_event("shutdown")
async def shutdown() -> None:
    console = getattr(app.state, "console", None)
    if console is not None:
        await console.aclose()


def get_console(request: Request) -> Console:
    return request.app.state.console


def get_job_repository() -> JobRepository:
    return SqlJobRepository(get_engine())


def _key_detail(record: KeyRecord) -> dict[str, str]:
    return {"hint": record.hint, "fingerprint": record.fingerprint}


def _job_detail(job: JobRecord) -> dict[str, Any]:
    return {
        "id": job.id,
        "target_id": job.target_id,
        "storage_id": job.storage_id,
        "comment": job.comment,
    }


def _key_selection(selector: KeySelector) -> dict[str, Any]:
    selected = selector.selected
    return {
        "selected": _key_detail(selected) if selected is not None else None,
        "valid": selector.is_valid(),
    }


def _job_selection(state: SelectionState, *, dispatch_enabled: bool) -> dict[str, Any]:
    return {
        "selected": _job_detail(state.selected) if state.selected is not None else None,
        "dispatch_enabled": dispatch_enabled,
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/fingerprint")
async def compute_fingerprint(request: Request) -> dict[str, str]:
    digest = fingerprint(await request.body())
    return {"fingerprint": digest, "display": format_fingerprint(digest)}


@app.get("/keys")
def list_keys(console: Annotated[Console, Depends(get_console)]) -> list[dict[str, str]]:
    return [_key_detail(record) for record in console.catalog.list()]


@app.post("/keys/reload")
async def reload_keys(console: Annotated[Console, Depends(get_console)]) -> list[dict[str, str]]:
    try:
        await console.key_selector.reload()
    except CatalogLoadFailed as exc:
        raise HTTPException(status_code=502, detail=f"Key listing failed: {exc}") from exc

    return [_key_detail(record) for record in console.catalog.list()]


@app.get("/keys/selection")
def get_key_selection(console: Annotated[Console, Depends(get_console)]) -> dict[str, Any]:
    return _key_selection(console.key_selector)


@app.put("/keys/selection")
def put_key_selection(
    request: KeySelectionRequest,
    console: Annotated[Console, Depends(get_console)],
) -> dict[str, Any]:
    selector = console.key_selector
    if request.fingerprint is None:
        selector.clear()
        return _key_selection(selector)

    try:
        value = normalize_fingerprint(request.fingerprint)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        selector.select(value)
    except UnknownKey as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return _key_selection(selector)


@app.get("/jobs")
def list_jobs(
    repository: Annotated[JobRepository, Depends(get_job_repository)],
) -> list[dict[str, Any]]:
    return [_job_detail(job) for job in repository.list_jobs()]


@app.post("/jobs", status_code=201)
def create_job(
    request: JobCreateRequest,
    repository: Annotated[JobRepository, Depends(get_job_repository)],
) -> dict[str, Any]:
    job = JobRecord(
        id=request.id,
        target_id=request.target_id,
        storage_id=request.storage_id,
        comment=request.comment,
    )
    try:
        repository.add(job)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return _job_detail(job)


@app.get("/jobs/selection")
def get_job_selection(console: Annotated[Console, Depends(get_console)]) -> dict[str, Any]:
    panel = console.job_panel
    return _job_selection(panel.selection, dispatch_enabled=panel.start_button.enabled)


@app.put("/jobs/selection")
def put_job_selection(
    request: JobSelectionRequest,
    console: Annotated[Console, Depends(get_console)],
    repository: Annotated[JobRepository, Depends(get_job_repository)],
) -> dict[str, Any]:
    records = repository.get_many(request.job_ids)
    missing = sorted(set(request.job_ids) - {record.id for record in records})
    if missing:
        raise HTTPException(status_code=404, detail=f"unknown backup jobs: {', '.join(missing)}")

    panel = console.job_panel
    state = panel.on_selection_change(records)
    return _job_selection(state, dispatch_enabled=panel.start_button.enabled)


@app.post("/jobs/start-backup")
async def start_backup(console: Annotated[Console, Depends(get_console)]) -> dict[str, Any]:
    outcome, notification = await console.job_panel.start_backup()

    if isinstance(outcome, Failure):
        status_code = 409 if outcome.kind is FailureKind.NO_TARGET_SELECTED else 502
        raise HTTPException(status_code=status_code, detail=notification.message)

    return {
        "status": "started",
        "task_id": outcome.task_id,
        "message": notification.message,
    }


@app.post("/media/{uuid}/remove")
async def remove_media(
    uuid: str,
    console: Annotated[Console, Depends(get_console)],
    request: MediaRemoveRequest | None = None,
) -> dict[str, Any]:
    options = request or MediaRemoveRequest()
    removal = MediaRemoval(uuid=uuid, label=options.label or uuid, force=options.force)

    outcome = await removal.confirm(console.endpoint)
    if isinstance(outcome, Failure):
        raise HTTPException(status_code=502, detail=f"Failed to remove media: {outcome.reason}")

    return {"status": "removed", "uuid": uuid}


def run() -> None:
    import uvicorn

    uvicorn.run("pbs_console.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
