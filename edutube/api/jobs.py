import json
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from edutube.db.session import get_db
from edutube.services.jobs import get_job as load_job

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobGetResponse(BaseModel):
    ok: bool
    job_id: int
    job_type: str
    video_id: str | None
    status: str
    error: str | None
    payload: dict
    created_at: datetime | None
    updated_at: datetime | None


@router.get("/{job_id}", response_model=JobGetResponse)
def get_job(job_id: int, db: Session = Depends(get_db)) -> JobGetResponse:
    job = load_job(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    try:
        payload = json.loads(job.payload_json or "{}")
    except json.JSONDecodeError:
        payload = {}

    return JobGetResponse(
        ok=True,
        job_id=job.id,
        job_type=job.job_type,
        video_id=job.video_id,
        status=job.status,
        error=job.error,
        payload=payload if isinstance(payload, dict) else {},
        created_at=job.created_at,
        updated_at=job.updated_at,
    )
