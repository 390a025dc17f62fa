# edutube/services/twelvelabs.py
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from edutube.services.errors import SearchConfigurationError, UpstreamServiceError
from edutube.services.retrieval import SearchHit
from edutube.services.segments import get_valid_segments

logger = logging.getLogger(__name__)

_CONFIDENCE_LABELS = {"high": 0.9, "medium": 0.6, "low": 0.3}


def _safe_float(x: Any, default: float = 0.0) -> float:
    try:
        return float(x)
    except (TypeError, ValueError):
        return default


def _confidence(item: Dict[str, Any]) -> float:
    """Numeric score (0..100) when present, else the high/medium/low label."""
    score = item.get("score")
    if score is not None:
        return max(0.0, min(1.0, _safe_float(score) / 100.0))
    label = str(item.get("confidence") or "").lower()
    return _CONFIDENCE_LABELS.get(label, 0.5)


def _scope(search_options: tuple[str, ...]) -> str:
    if len(search_options) == 1 and search_options[0] in ("visual", "audio"):
        return search_options[0]
    return "mixed"


class TwelveLabsSearchClient:
    """
    Video-intelligence search over the TwelveLabs REST API.

    The indexing task id is resolved to the provider's video id once
    (GET /tasks/{id}) and remembered for later searches.
    """

    def __init__(
        self,
        base_url: str,
        index_id: str,
        *,
        api_key: Optional[str] = None,
        search_options: tuple[str, ...] = ("visual", "audio"),
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.index_id = index_id
        self._api_key = api_key
        self.search_options = search_options
        self.timeout_s = timeout_s
        self._transport = transport
        self._provider_video_ids: Dict[str, str] = {}

    def _headers(self) -> Dict[str, str]:
        api_key = self._api_key or os.getenv("TWELVELABS_API_KEY")
        if not api_key:
            raise SearchConfigurationError("TWELVELABS_API_KEY is missing")
        if not self.index_id:
            raise SearchConfigurationError("TWELVELABS_INDEX_ID is missing")
        return {"x-api-key": api_key}

    async def _provider_video_id(self, client: httpx.AsyncClient, task_id: str) -> str:
        cached = self._provider_video_ids.get(task_id)
        if cached:
            return cached

        r = await client.get(f"{self.base_url}/tasks/{task_id}")
        r.raise_for_status()
        data = r.json()
        provider_id = data.get("video_id")
        if not provider_id:
            raise UpstreamServiceError(f"Indexing task {task_id} has no video yet (status={data.get('status')})")
        self._provider_video_ids[task_id] = str(provider_id)
        return str(provider_id)

    def _to_hit(self, video_id: str, item: Dict[str, Any]) -> SearchHit:
        start = _safe_float(item.get("start"))
        end = _safe_float(item.get("end"))
        text = item.get("transcription") or item.get("text") or ""
        return SearchHit(
            video_id=video_id,
            start_sec=start,
            end_sec=end,
            text=str(text),
            confidence=_confidence(item),
            embedding_scope=_scope(self.search_options),
            deep_link=f"/watch?v={video_id}#t={int(start)}",
        )

    async def search(self, video_id: str, task_id: str, query: str, limit: int) -> List[SearchHit]:
        headers = self._headers()
        timeout = httpx.Timeout(self.timeout_s, connect=10.0)

        try:
            async with httpx.AsyncClient(timeout=timeout, headers=headers, transport=self._transport) as client:
                provider_id = await self._provider_video_id(client, task_id)

                form: List[tuple[str, str]] = [
                    ("index_id", self.index_id),
                    ("query_text", query),
                    ("page_limit", str(int(limit))),
                    ("filter", json.dumps({"id": [provider_id]})),
                ]
                form.extend(("search_options", opt) for opt in self.search_options)

                # multipart/form-data, as the search endpoint expects
                r = await client.post(
                    f"{self.base_url}/search",
                    files=[(k, (None, v)) for k, v in form],
                )
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamServiceError(
                f"TwelveLabs search failed ({e.response.status_code}): {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamServiceError(f"TwelveLabs search failed: {e}") from e

        items = data.get("data") or []
        hits = [self._to_hit(video_id, it) for it in items if isinstance(it, dict)]
        valid = get_valid_segments(hits)
        if len(valid) != len(hits):
            logger.warning("Dropped %d invalid segments from search %r", len(hits) - len(valid), query)
        return valid[: int(limit)]
