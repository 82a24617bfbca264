"""
Chart API routes — mounted as a sub-router on the main FastAPI app.

POST /api/parse         raw text -> ParseResult (local parser only)
POST /api/charts        raw text or structured input -> PipelineResult
POST /api/generate      prompt -> PipelineResult via the AI parse service
GET  /api/chart-types   registry of supported chart types
GET  /api/themes        registry of built-in themes
GET  /api/cache/stats   prompt/config cache statistics
POST /api/cache/clear   drop every cached entry
GET  /api/health
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from app.http_client import ApiError, RequestTimeoutError
from app.llm import LLMError
from core.models import ChartRequest, GenerateRequest, ParseRequest
from server.orchestrator import ChartPipeline
from skills.build_config import ConfigError, all_chart_types, all_themes, chart_types_by_category
from skills.parse import parse

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["charts"])


def _pipeline(request: Request) -> ChartPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised.")
    return pipeline


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/parse")
async def parse_text(body: ParseRequest):
    return parse(body.text, body.chartType).model_dump()


@router.post("/charts")
async def create_chart(request: Request, body: ChartRequest):
    pipeline = _pipeline(request)
    try:
        result = pipeline.run(
            body.input,
            body.chartType,
            theme=body.theme,
            animation=body.animation,
            options=body.options,
            max_points=body.maxPoints,
        )
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.model_dump()


@router.post("/generate")
async def generate_chart(request: Request, body: GenerateRequest):
    pipeline = _pipeline(request)
    try:
        result = await pipeline.run_async(body.prompt, body.chartType)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RequestTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except (ApiError, LLMError) as e:
        logger.exception("AI parse failed")
        raise HTTPException(status_code=502, detail=str(e))
    return result.model_dump()


@router.get("/chart-types")
async def list_chart_types(category: Optional[str] = None):
    types = chart_types_by_category(category) if category else list(all_chart_types().values())
    return {"chart_types": [t.model_dump() for t in types]}


@router.get("/themes")
async def list_themes():
    return {"themes": [t.model_dump() for t in all_themes().values()]}


@router.get("/cache/stats")
async def cache_stats(request: Request):
    return _pipeline(request).cache_stats()


@router.post("/cache/clear")
async def clear_cache(request: Request):
    _pipeline(request).clear_caches()
    return {"ok": True}


@router.get("/health")
async def health():
    return {"status": "ok"}
