from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from edutube.db.session import SessionLocal
from edutube.models.video import Video

VIDEO_STATUSES = ("uploaded", "indexing", "ready", "failed")


@dataclass(frozen=True)
class VideoRecord:
    """Detached snapshot of a Video row, safe to hold across awaits."""

    id: str
    status: str
    task_id: str | None = None
    duration_sec: float | None = None


def to_record(video: Video) -> VideoRecord:
    return VideoRecord(
        id=video.id,
        status=video.status,
        task_id=video.task_id,
        duration_sec=video.duration_sec,
    )


def get_video(db: Session, video_id: str) -> Video | None:
    return db.query(Video).filter(Video.id == video_id).first()


def upsert_video(db: Session, video_id: str, **fields: Any) -> Video:
    """Create the video if missing; only fields passed as non-None are updated."""
    status = fields.get("status")
    if status is not None and status not in VIDEO_STATUSES:
        raise ValueError(f"Invalid video status: {status!r}")

    video = get_video(db, video_id)
    if video is None:
        video = Video(id=video_id)
        db.add(video)

    for k, v in fields.items():
        if v is not None:
            setattr(video, k, v)

    db.commit()
    db.refresh(video)
    return video


def load_video_record(video_id: str) -> VideoRecord | None:
    db: Session = SessionLocal()
    try:
        video = get_video(db, video_id)
        return to_record(video) if video else None
    finally:
        db.close()
