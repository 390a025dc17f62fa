# edutube/services/study.py
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Literal

from edutube.core.config import settings
from edutube.services.automatic import AutomaticStudyGenerator
from edutube.services.cache import GenerationCache
from edutube.services.chains import TopicChainGenerator
from edutube.services.context import build_context
from edutube.services.errors import VideoNotFoundError, VideoNotReadyError
from edutube.services.llm.base import TextGenerator
from edutube.services.materials import DirectStudyMaterials, StudyMaterials, UnifiedStudyMaterials
from edutube.services.retrieval import SearchHit, VideoSearch, fuse_hits
from edutube.services.segments import get_valid_segments
from edutube.services.unified import UnifiedStudyGenerator
from edutube.services.videos import VideoRecord, load_video_record

logger = logging.getLogger(__name__)

Strategy = Literal["unified", "chain"]
STRATEGIES: tuple[str, ...] = ("unified", "chain")


@dataclass(frozen=True)
class GenerateOptions:
    query: str | None = None
    max_hits: int = 12
    max_context_chars: int = 3500
    summary_length: str = "medium"
    summary_tone: str = "neutral"
    topics_count: int = 4
    flashcards_per_topic: int = 8
    quiz_per_topic: int = 8
    strategy: Strategy = "unified"

    def __post_init__(self) -> None:
        if self.strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {self.strategy!r} (use unified or chain)")
        for name in ("max_hits", "max_context_chars", "topics_count", "flashcards_per_topic", "quiz_per_topic"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

    def signature(self) -> str:
        """Stable cache-key fragment; two option sets with equal signatures produce interchangeable results."""
        q = (self.query or "").strip().lower()
        return "|".join(
            str(v)
            for v in (
                self.strategy,
                q,
                self.max_hits,
                self.max_context_chars,
                self.summary_length,
                self.summary_tone,
                self.topics_count,
                self.flashcards_per_topic,
                self.quiz_per_topic,
            )
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GenerateOptions":
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in names})


class StudyService:
    """
    Entry point for study material generation.

    One instance per process: it owns the generation cache, so concurrent
    requests for the same video and options share a single generation.
    """

    def __init__(
        self,
        search: VideoSearch,
        generator: TextGenerator,
        cache: GenerationCache,
        *,
        lookup_video: Callable[[str], VideoRecord | None] = load_video_record,
        default_timeout: float | None = None,
        unified_max_attempts: int = 1,
        direct_max_attempts: int = 2,
    ) -> None:
        self.search = search
        self.cache = cache
        self.lookup_video = lookup_video
        self.default_timeout = default_timeout
        self.unified = UnifiedStudyGenerator(generator, max_attempts=unified_max_attempts)
        self.chain = TopicChainGenerator(generator)
        self.direct = AutomaticStudyGenerator(generator, max_attempts=direct_max_attempts)

    # ----------------------------
    # Video checks
    # ----------------------------

    def _ready_video(self, video_id: str) -> VideoRecord:
        # Blocking DB read; callers run it in a worker thread.
        video = self.lookup_video(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")
        if not video.task_id:
            raise VideoNotReadyError(f"Video {video_id} has no indexing task yet")
        if video.status != "ready":
            raise VideoNotReadyError(f"Video {video_id} is not ready (status={video.status})")
        return video

    async def _hits(self, video: VideoRecord, *, query: str | None, max_hits: int) -> list[SearchHit]:
        hits = await fuse_hits(
            self.search,
            video_id=video.id,
            task_id=video.task_id or "",
            query=query,
            max_hits=max_hits,
        )
        valid = get_valid_segments(hits, video.duration_sec)
        if len(valid) != len(hits):
            logger.warning("Dropped %d hits outside video %s", len(hits) - len(valid), video.id)
        return valid

    # ----------------------------
    # Topic strategies
    # ----------------------------

    async def _generate(self, video: VideoRecord, options: GenerateOptions) -> StudyMaterials:
        started = time.perf_counter()

        hits = await self._hits(video, query=options.query, max_hits=options.max_hits)
        t_search = time.perf_counter()

        context = build_context(hits, options.max_context_chars)
        logger.info(
            "Video %s: %d hits, %d context chars (search %.0fms)",
            video.id, len(hits), len(context), (t_search - started) * 1000,
        )

        strategy = self.unified if options.strategy == "unified" else self.chain
        generated: UnifiedStudyMaterials = await strategy.generate_all_materials(
            context,
            summary_length=options.summary_length,
            summary_tone=options.summary_tone,
            topics_count=options.topics_count,
            flashcards_per_topic=options.flashcards_per_topic,
            quiz_per_topic=options.quiz_per_topic,
        )
        logger.info(
            "Video %s: %s generation %.0fms, total %.0fms",
            video.id, options.strategy, (time.perf_counter() - t_search) * 1000, (time.perf_counter() - started) * 1000,
        )

        return StudyMaterials(
            video_id=video.id,
            hits=hits,
            summary=generated.summary,
            topics=generated.topics,
            flashcards_by_topic=generated.flashcards_by_topic,
            quiz_by_topic=generated.quiz_by_topic,
        )

    async def generate_all(
        self,
        video_id: str,
        options: GenerateOptions | None = None,
        *,
        timeout: float | None = None,
        force_refresh: bool = False,
    ) -> StudyMaterials:
        options = options or GenerateOptions()
        video = await asyncio.to_thread(self._ready_video, video_id)

        key = f"{video_id}:{options.signature()}"
        return await self.cache.get_or_generate(
            key,
            lambda: self._generate(video, options),
            timeout=timeout if timeout is not None else self.default_timeout,
            force_refresh=force_refresh,
        )

    # ----------------------------
    # Direct transcript
    # ----------------------------

    async def _generate_direct(self, video: VideoRecord, max_hits: int) -> DirectStudyMaterials:
        hits = await self._hits(video, query=None, max_hits=max_hits)
        materials = await self.direct.generate_study_materials(hits, video.duration_sec)
        return dataclasses.replace(materials, video_id=video.id, hits=hits)

    async def generate_direct(
        self,
        video_id: str,
        *,
        max_hits: int = 12,
        timeout: float | None = None,
        force_refresh: bool = False,
    ) -> DirectStudyMaterials:
        video = await asyncio.to_thread(self._ready_video, video_id)

        key = f"{video_id}:direct|{max_hits}"
        return await self.cache.get_or_generate(
            key,
            lambda: self._generate_direct(video, max_hits),
            timeout=timeout if timeout is not None else self.default_timeout,
            force_refresh=force_refresh,
        )


@lru_cache(maxsize=1)
def get_study_service() -> StudyService:
    """Process-wide service built from settings (API app state and Celery worker)."""
    from edutube.services.llm.provider import build_text_generator
    from edutube.services.twelvelabs import TwelveLabsSearchClient

    return StudyService(
        search=TwelveLabsSearchClient(settings.twelvelabs_base_url, settings.twelvelabs_index_id),
        generator=build_text_generator(settings),
        cache=GenerationCache(ttl=settings.cache_ttl_sec, cooldown=settings.cache_cooldown_sec),
        default_timeout=settings.generation_timeout_sec,
    )
