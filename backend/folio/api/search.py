"""
Profile Search API

Endpoints:
    GET /api/search?q=<text>&mode=default|ai - Ranked profile summaries

Responses are cacheable at the edge; "ai" mode gets a longer TTL.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from folio.database import get_db
from folio.schemas import SearchResponse, SearchResultResponse
from folio.services.search_engine import ProfileSearchEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/search", tags=["search"])

CACHE_CONTROL = {
    "default": "public, s-maxage=180, stale-while-revalidate=300",
    "ai": "public, s-maxage=300, stale-while-revalidate=600",
}


def get_search_engine(db: AsyncSession = Depends(get_db)) -> ProfileSearchEngine:
    return ProfileSearchEngine(db)


@router.get("", response_model=SearchResponse)
async def search_profiles(
    response: Response,
    q: Optional[str] = Query(None, description="Free-text query"),
    mode: str = Query("default", description="default or ai"),
    engine: ProfileSearchEngine = Depends(get_search_engine),
):
    results = await engine.search(q, mode)

    response.headers["Cache-Control"] = CACHE_CONTROL[mode]
    return SearchResponse(
        users=[SearchResultResponse.model_validate(r) for r in results]
    )
