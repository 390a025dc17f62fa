# edutube/worker/tasks.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

from sqlalchemy.orm import Session

from edutube.db.session import SessionLocal
from edutube.services import study as study_service
from edutube.services.jobs import merge_job_payload, set_job_status
from edutube.services.materials import count_items
from edutube.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="study.generate_materials")
def generate_materials(job_id: int, video_id: str, options: dict[str, Any] | None = None) -> dict:
    db: Session = SessionLocal()
    try:
        # 1) Mark job running
        set_job_status(db, job_id, "running")
        merge_job_payload(db, job_id, {"video_id": video_id, "progress": {"stage": "start"}})

        opts = dict(options or {})
        force_refresh = bool(opts.pop("force_refresh", False))
        generate_options = study_service.GenerateOptions.from_dict(opts)

        # 2) Run the pipeline on this worker's own event loop
        service = study_service.get_study_service()
        materials = asyncio.run(
            service.generate_all(video_id, generate_options, force_refresh=force_refresh)
        )

        # 3) Store result + counts
        merge_job_payload(
            db,
            job_id,
            {
                "progress": {"stage": "done"},
                "counts": {
                    "hits": len(materials.hits),
                    "topics": len(materials.topics),
                    "flashcards": count_items(materials.flashcards_by_topic),
                    "quiz": count_items(materials.quiz_by_topic),
                },
                "result": materials.to_dict(),
            },
        )
        set_job_status(db, job_id, "done")
        return {"ok": True, "job_id": job_id, "video_id": video_id}
    except Exception as e:
        logger.error("Job %s for video %s failed: %s", job_id, video_id, e)
        db.rollback()
        merge_job_payload(db, job_id, {"progress": {"stage": "failed"}})
        set_job_status(db, job_id, "failed", error=str(e))
        raise
    finally:
        db.close()
