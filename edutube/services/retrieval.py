# edutube/services/retrieval.py
from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Protocol

from edutube.services.errors import SearchConfigurationError

logger = logging.getLogger(__name__)


COVERAGE_QUERIES: tuple[str, ...] = (
    "overview of the lecture",
    "key concepts and definitions",
    "formulas or procedures",
    "important graphics or diagrams",
)


@dataclass(frozen=True)
class SearchHit:
    video_id: str
    start_sec: float
    end_sec: float
    text: str
    confidence: float
    embedding_scope: str = "visual"  # visual | audio | mixed
    deep_link: str = ""


class VideoSearch(Protocol):
    async def search(self, video_id: str, task_id: str, query: str, limit: int) -> list[SearchHit]:
        ...


def _dedup_key(hit: SearchHit) -> tuple[int, int]:
    return (round(hit.start_sec), round(hit.end_sec))


def merge_hits(result_sets: list[list[SearchHit]], max_hits: int) -> list[SearchHit]:
    """
    Merge coverage results: first occurrence of a rounded (start, end) window wins,
    then confidence desc / start asc, truncated to max_hits.
    """
    seen: set[tuple[int, int]] = set()
    merged: list[SearchHit] = []
    for part in result_sets:
        for h in part:
            key = _dedup_key(h)
            if key in seen:
                continue
            seen.add(key)
            merged.append(h)

    merged.sort(key=lambda h: (-(h.confidence or 0.0), h.start_sec))
    return merged[: max(0, int(max_hits))]


async def _coverage_query(
    search: VideoSearch,
    *,
    video_id: str,
    task_id: str,
    query: str,
    limit: int,
    position: int,
    total: int,
) -> list[SearchHit]:
    try:
        results = await search.search(video_id, task_id, query, limit)
    except SearchConfigurationError:
        raise
    except Exception as e:
        logger.warning("Coverage query %d/%d %r failed: %s", position, total, query, e)
        return []
    logger.debug("Coverage query %d/%d %r returned %d hits", position, total, query, len(results))
    return list(results)


async def fuse_hits(
    search: VideoSearch,
    *,
    video_id: str,
    task_id: str,
    query: str | None = None,
    max_hits: int = 12,
    coverage_queries: tuple[str, ...] = COVERAGE_QUERIES,
) -> list[SearchHit]:
    """
    Single-query mode forwards the query and trusts the capability's ranking.
    Coverage mode fans out the canonical queries concurrently and merges them.
    """
    started = time.perf_counter()

    q = (query or "").strip()
    if q:
        hits = list(await search.search(video_id, task_id, q, max_hits))
        logger.info(
            "Search %r for video %s returned %d hits in %.0fms",
            q, video_id, len(hits), (time.perf_counter() - started) * 1000,
        )
        return hits

    per_query = math.ceil(max_hits / len(coverage_queries))
    result_sets = await asyncio.gather(
        *(
            _coverage_query(
                search,
                video_id=video_id,
                task_id=task_id,
                query=cq,
                limit=per_query,
                position=i,
                total=len(coverage_queries),
            )
            for i, cq in enumerate(coverage_queries, start=1)
        )
    )

    hits = merge_hits(list(result_sets), max_hits)
    logger.info(
        "Coverage fusion for video %s: %d raw -> %d hits in %.0fms",
        video_id, sum(len(r) for r in result_sets), len(hits), (time.perf_counter() - started) * 1000,
    )
    return hits
