from __future__ import annotations

import dataclasses
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from edutube.api.deps import get_service
from edutube.core.config import settings
from edutube.db.session import get_db
from edutube.services.errors import (
    GenerationTimeoutError,
    InsufficientContentError,
    SearchConfigurationError,
    StudyGenerationError,
    VideoNotFoundError,
    VideoNotReadyError,
)
from edutube.services.jobs import JOB_TYPE_STUDY_MATERIALS, create_job
from edutube.services.study import GenerateOptions, StudyService
from edutube.services.videos import get_video
from edutube.worker.tasks import generate_materials

router = APIRouter(prefix="/study", tags=["study"])


class Limits(BaseModel):
    hits: int = Field(default=12, ge=1, le=50)
    cards: int = Field(default=8, ge=1, le=30)
    questions: int = Field(default=8, ge=1, le=30)


class GenerateRequest(BaseModel):
    video_id: str
    query: str | None = None
    limits: Limits = Limits()
    length: str = "medium"
    tone: str = "neutral"
    topics: int = Field(default=4, ge=1, le=10)
    strategy: str | None = None  # unified | chain; defaults to STUDY_GENERATION_STRATEGY
    force_refresh: bool = False

    def to_options(self) -> GenerateOptions:
        return GenerateOptions(
            query=self.query,
            max_hits=self.limits.hits,
            summary_length=self.length,
            summary_tone=self.tone,
            topics_count=self.topics,
            flashcards_per_topic=self.limits.cards,
            quiz_per_topic=self.limits.questions,
            strategy=(self.strategy or settings.generation_strategy),  # type: ignore[arg-type]
        )


class GenerateResponse(BaseModel):
    ok: bool
    video_id: str
    summary: str
    topics: list[str]
    flashcards_by_topic: dict[str, list[dict]]
    quiz_by_topic: dict[str, list[dict]]
    hits: list[dict]


class DirectRequest(BaseModel):
    video_id: str
    max_hits: int = Field(default=12, ge=1, le=50)
    force_refresh: bool = False


class DirectResponse(BaseModel):
    ok: bool
    video_id: str
    summary: str
    quiz: list[dict]
    flashcards: list[dict]
    hits: list[dict]


class StudyJobResponse(BaseModel):
    ok: bool
    video_id: str
    job_id: int
    task_id: str


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, VideoNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, VideoNotReadyError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, GenerationTimeoutError):
        return HTTPException(status_code=408, detail=str(e))
    if isinstance(e, InsufficientContentError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, SearchConfigurationError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


_MAPPED_ERRORS = (VideoNotFoundError, VideoNotReadyError, SearchConfigurationError, StudyGenerationError)


@router.post("/generate", response_model=GenerateResponse)
async def generate(req: GenerateRequest, service: StudyService = Depends(get_service)) -> GenerateResponse:
    try:
        options = req.to_options()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        materials = await service.generate_all(req.video_id, options, force_refresh=req.force_refresh)
    except _MAPPED_ERRORS as e:
        raise _http_error(e)

    data: dict[str, Any] = materials.to_dict()
    return GenerateResponse(ok=True, **data)


@router.post("/direct", response_model=DirectResponse)
async def generate_direct(req: DirectRequest, service: StudyService = Depends(get_service)) -> DirectResponse:
    try:
        materials = await service.generate_direct(
            req.video_id, max_hits=req.max_hits, force_refresh=req.force_refresh
        )
    except _MAPPED_ERRORS as e:
        raise _http_error(e)

    data = materials.to_dict()
    return DirectResponse(
        ok=True,
        video_id=req.video_id,
        summary=data["summary"],
        quiz=data["quiz"],
        flashcards=data["flashcards"],
        hits=data["hits"],
    )


@router.post("/jobs", response_model=StudyJobResponse)
def create_study_job(req: GenerateRequest, db: Session = Depends(get_db)) -> StudyJobResponse:
    video = get_video(db, req.video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    if not video.task_id or video.status != "ready":
        raise HTTPException(status_code=400, detail=f"Video is not ready yet (status={video.status})")

    try:
        options = req.to_options()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    payload = {**dataclasses.asdict(options), "force_refresh": req.force_refresh}
    job = create_job(db, JOB_TYPE_STUDY_MATERIALS, {"options": payload}, video_id=req.video_id)
    async_result = generate_materials.delay(job.id, req.video_id, payload)

    return StudyJobResponse(ok=True, video_id=req.video_id, job_id=job.id, task_id=async_result.id)
