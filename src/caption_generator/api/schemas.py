from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class JobStatus(str, Enum):
    queued = "queued"
    running = "running"
    succeeded = "succeeded"
    stopped = "stopped"
    failed = "failed"


class ErrorPolicy(str, Enum):
    skip = "skip"
    stop = "stop"


class CaptionJobRequest(BaseModel):
    folder: Path
    template: str
    on_error: ErrorPolicy = ErrorPolicy.skip
    dataset_path: Path | None = None
    save: bool = True


class CaptionJobResponse(BaseModel):
    job_id: str
    status: JobStatus


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    total: int = 0
    completed: int = 0
    captioned: int = 0
    failed: int = 0
    message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
