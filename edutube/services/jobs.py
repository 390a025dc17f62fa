from __future__ import annotations

import json
from typing import Any

from sqlalchemy.orm import Session

from edutube.models.job import Job

JOB_TYPE_STUDY_MATERIALS = "generate_study_materials"


def create_job(db: Session, job_type: str, payload: dict, video_id: str | None = None) -> Job:
    job = Job(
        job_type=job_type,
        video_id=video_id,
        status="queued",
        payload_json=json.dumps(payload or {}, ensure_ascii=False),
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_job(db: Session, job_id: int) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def set_job_status(db: Session, job_id: int, status: str, error: str | None = None) -> Job:
    job = db.query(Job).filter(Job.id == job_id).one()
    job.status = status
    job.error = error
    db.commit()
    db.refresh(job)
    return job


def get_job_payload(db: Session, job_id: int) -> dict[str, Any]:
    job = db.query(Job).filter(Job.id == job_id).one()
    try:
        payload = json.loads(job.payload_json or "{}")
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


def merge_job_payload(db: Session, job_id: int, patch: dict[str, Any]) -> Job:
    """
    Merge a patch into payload_json.
    Existing keys are kept; keys present in patch win.
    """
    base = get_job_payload(db, job_id)
    base.update(patch or {})

    job = db.query(Job).filter(Job.id == job_id).one()
    job.payload_json = json.dumps(base, ensure_ascii=False)
    db.commit()
    db.refresh(job)
    return job
