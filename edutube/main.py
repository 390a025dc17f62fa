from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from edutube.api.jobs import router as jobs_router
from edutube.api.study import router as study_router
from edutube.api.videos import router as videos_router
from edutube.core.config import configure_logging
from edutube.db.session import SessionLocal, init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(title="EduTube Study API", version="0.1.0", lifespan=lifespan)
app.include_router(videos_router)
app.include_router(study_router)
app.include_router(jobs_router)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        db_ok = False
    finally:
        db.close()

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
