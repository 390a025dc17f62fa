from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from edutube.db.session import get_db
from edutube.models.video import Video
from edutube.services.segments import validate_segment
from edutube.services.videos import get_video, upsert_video

router = APIRouter(tags=["videos"])


class VideoCreateRequest(BaseModel):
    id: str = Field(min_length=1, max_length=128)
    title: str = "Untitled"
    status: str = "uploaded"
    task_id: str | None = None
    duration_sec: float | None = Field(default=None, ge=0)


class VideoResponse(BaseModel):
    ok: bool
    id: str
    title: str
    status: str
    task_id: str | None
    duration_sec: float | None
    created_at: datetime | None
    updated_at: datetime | None


def _video_response(video: Video) -> VideoResponse:
    return VideoResponse(
        ok=True,
        id=video.id,
        title=video.title,
        status=video.status,
        task_id=video.task_id,
        duration_sec=video.duration_sec,
        created_at=video.created_at,
        updated_at=video.updated_at,
    )


@router.post("/videos", response_model=VideoResponse)
def register_video(req: VideoCreateRequest, db: Session = Depends(get_db)) -> VideoResponse:
    try:
        video = upsert_video(
            db,
            req.id,
            title=req.title,
            status=req.status,
            task_id=req.task_id,
            duration_sec=req.duration_sec,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _video_response(video)


@router.get("/videos/{video_id}", response_model=VideoResponse)
def fetch_video(video_id: str, db: Session = Depends(get_db)) -> VideoResponse:
    video = get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return _video_response(video)


# -----------------------
# Indexing webhook
# -----------------------
class EmbeddingSegment(BaseModel):
    start_offset_sec: float
    end_offset_sec: float
    embedding_scope: str = "visual"


class VideoIndexWebhook(BaseModel):
    video_id: str
    task_id: str | None = None
    status: str  # indexing | ready | failed
    duration_sec: float | None = Field(default=None, ge=0)
    segments: list[EmbeddingSegment] = []


class VideoIndexWebhookResponse(BaseModel):
    ok: bool
    video_id: str
    status: str
    segments_received: int
    segments_accepted: int
    segment_errors: list[str]


@router.post("/webhooks/video-index", response_model=VideoIndexWebhookResponse)
def video_index_webhook(req: VideoIndexWebhook, db: Session = Depends(get_db)) -> VideoIndexWebhookResponse:
    video = get_video(db, req.video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    try:
        video = upsert_video(
            db,
            req.video_id,
            status=req.status,
            task_id=req.task_id,
            duration_sec=req.duration_sec,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    accepted = 0
    errors: list[str] = []
    for i, seg in enumerate(req.segments):
        result = validate_segment(seg.start_offset_sec, seg.end_offset_sec, video.duration_sec)
        if result.is_valid:
            accepted += 1
        else:
            errors.extend(f"segment {i}: {msg}" for msg in result.errors)

    return VideoIndexWebhookResponse(
        ok=True,
        video_id=video.id,
        status=video.status,
        segments_received=len(req.segments),
        segments_accepted=accepted,
        segment_errors=errors[:20],
    )
