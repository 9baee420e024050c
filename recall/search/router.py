# FILE: recall/search/router.py
"""
Search endpoints (UI bridge).

POST /search         - local matches, prefixed with a generated answer
POST /search/local   - local matches only
POST /search/stream  - SSE: token events while the answer generates, then
                       a done event carrying the full result list

SSE events:
    {"type": "token", "content": "..."}
    {"type": "done", "results": [...], "provider": "gemini", "total_length": 123}
    {"type": "error", "error": "..."}
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from recall.search.engine import AnswerEngine, SearchResult, preview_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


class SearchRequest(BaseModel):
    query: str = Field(..., max_length=4000)


class SearchResultModel(BaseModel):
    id: str
    title: str
    snippet: str
    score: float
    content: Optional[str] = None
    folder: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[SearchResultModel] = Field(default_factory=list)


def get_answer_engine(request: Request) -> AnswerEngine:
    return request.app.state.answer_engine


def _response(results: List[SearchResult]) -> SearchResponse:
    return SearchResponse(results=[SearchResultModel(**r.to_dict()) for r in results])


def _log_done(route: str, query: str, count: int, started: float) -> None:
    logger.info(
        "[search] %s done: len=%d query=%r results=%d elapsed_ms=%d",
        route,
        len(query),
        preview_query(query),
        count,
        int((time.perf_counter() - started) * 1000),
    )


@router.post("", response_model=SearchResponse)
async def search(req: SearchRequest, engine: AnswerEngine = Depends(get_answer_engine)) -> SearchResponse:
    started = time.perf_counter()
    logger.info("[search] start: len=%d query=%r", len(req.query), preview_query(req.query))
    try:
        results = await engine.search(req.query)
    except Exception as e:
        logger.exception("[search] failed")
        raise HTTPException(status_code=500, detail=f"Search failed: {e}")
    _log_done("search", req.query, len(results), started)
    return _response(results)


@router.post("/local", response_model=SearchResponse)
def search_local(req: SearchRequest, engine: AnswerEngine = Depends(get_answer_engine)) -> SearchResponse:
    started = time.perf_counter()
    try:
        results = engine.search_local(req.query)
    except Exception as e:
        logger.exception("[search] local failed")
        raise HTTPException(status_code=500, detail=f"Search failed: {e}")
    _log_done("local", req.query, len(results), started)
    return _response(results)


def _event(payload: dict) -> str:
    return "data: " + json.dumps(payload) + "\n\n"


async def generate_search_stream(engine: AnswerEngine, query: str, provider: Optional[str] = None):
    """Bridge the engine's chunk callback onto an SSE stream."""
    started = time.perf_counter()
    queue: asyncio.Queue = asyncio.Queue()

    task = asyncio.create_task(engine.search_with_stream(query, queue.put_nowait))
    # Sentinel lands after every chunk the task queued
    task.add_done_callback(lambda _: queue.put_nowait(None))

    total_length = 0
    while True:
        chunk = await queue.get()
        if chunk is None:
            break
        total_length += len(chunk)
        yield _event({"type": "token", "content": chunk})

    try:
        results = task.result()
    except Exception as e:
        logger.exception("[search] stream failed")
        yield _event({"type": "error", "error": str(e)})
        return

    _log_done("stream", query, len(results), started)
    yield _event({
        "type": "done",
        "results": [r.to_dict() for r in results],
        "provider": provider,
        "total_length": total_length,
    })


@router.post("/stream")
async def search_stream(
    req: SearchRequest,
    request: Request,
    engine: AnswerEngine = Depends(get_answer_engine),
):
    logger.info("[search] stream start: len=%d query=%r", len(req.query), preview_query(req.query))
    orchestrator = getattr(request.app.state, "orchestrator", None)
    provider = orchestrator.get_current_provider() if orchestrator else None
    return StreamingResponse(
        generate_search_stream(engine, req.query, provider),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


__all__ = ["router", "generate_search_stream", "get_answer_engine"]
