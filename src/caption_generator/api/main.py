from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from threading import Lock

from fastapi import Depends, FastAPI, HTTPException

from ..config import Settings, SettingsError
from ..data.items import CaptionItem, ItemSet
from ..export import DatasetArchiveExporter, LooseFileExporter
from ..logging import get_logger
from ..pipeline import CaptioningOrchestrator, plan_batch, skip_policy, stop_policy
from .deps import get_settings
from .schemas import CaptionJobRequest, CaptionJobResponse, ErrorPolicy, JobStatus, JobStatusResponse


log = get_logger(__name__)
app = FastAPI(title="Caption Generator API", version="0.1.0")
_executor: ThreadPoolExecutor | None = None
_state: dict[str, dict] = {}
_state_lock = Lock()

MAX_JOBS = 2


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=MAX_JOBS, thread_name_prefix="job")
    return _executor


def _update(job_id: str, **fields) -> None:
    with _state_lock:
        _state[job_id].update(fields)


@app.get("/healthz")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/jobs", response_model=CaptionJobResponse)
async def submit_job(
    request: CaptionJobRequest,
    settings: Settings = Depends(get_settings),
) -> CaptionJobResponse:
    if not request.folder.is_dir():
        raise HTTPException(status_code=404, detail="Folder not found")
    try:
        settings.resolve_endpoint(settings.get_template(request.template))
    except SettingsError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    job_id = uuid.uuid4().hex
    with _state_lock:
        _state[job_id] = {
            "status": JobStatus.queued.value,
            "created_at": datetime.utcnow().isoformat(),
        }
    _get_executor().submit(_run_job, job_id, request, settings)
    return CaptionJobResponse(job_id=job_id, status=JobStatus.queued)


def _run_job(job_id: str, request: CaptionJobRequest, settings: Settings) -> None:
    _update(job_id, status=JobStatus.running.value, started_at=datetime.utcnow().isoformat())

    def on_event(index: int, item: CaptionItem, event: str) -> None:
        if event == "finished":
            with _state_lock:
                _state[job_id]["completed"] = _state[job_id].get("completed", 0) + 1

    try:
        items = ItemSet.from_folder(request.folder)
        _update(job_id, total=len(items))
        client, prompt = plan_batch(settings, request.template)
        resolver = stop_policy if request.on_error is ErrorPolicy.stop else skip_policy
        orchestrator = CaptioningOrchestrator(
            client=client,
            resolver=resolver,
            persist_generated=settings.persist_generated,
            listener=on_event,
        )
        try:
            result = orchestrator.run_batch(items.snapshot(), prompt, settings.concurrency_limit)
        finally:
            client.close()

        message = None
        if request.save:
            if request.dataset_path is not None:
                DatasetArchiveExporter().export_to_path(items.snapshot(), request.dataset_path)
            else:
                outcomes = LooseFileExporter(max_workers=settings.export_workers).export(items.snapshot())
                unsaved = sum(1 for outcome in outcomes if not outcome.ok)
                if unsaved:
                    message = f"{unsaved} captions could not be saved"
    except Exception as exc:  # noqa: BLE001
        log.exception("Caption job %s failed", job_id)
        _update(
            job_id,
            status=JobStatus.failed.value,
            message=str(exc),
            finished_at=datetime.utcnow().isoformat(),
        )
        return

    _update(
        job_id,
        status=(JobStatus.stopped if result.cancelled else JobStatus.succeeded).value,
        captioned=len(result.captioned),
        failed=len(result.failed),
        message=message,
        finished_at=datetime.utcnow().isoformat(),
    )


@app.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def job_status(job_id: str) -> JobStatusResponse:
    with _state_lock:
        payload = dict(_state.get(job_id) or {})
    if not payload:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(job_id=job_id, **payload)
