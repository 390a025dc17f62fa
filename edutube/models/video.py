from datetime import datetime

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from edutube.db.base import Base


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    title: Mapped[str] = mapped_column(String(512), nullable=False, default="Untitled")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="uploaded")  # uploaded|indexing|ready|failed

    # video-intelligence indexing task; required before search
    task_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    duration_sec: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
