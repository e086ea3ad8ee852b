"""pm_listing REST endpoints.

GET /listings/premium    — boosted active listings, latest expiry first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_listing.application.service import ListingApplicationService

router = APIRouter(prefix="/listings", tags=["listings"])

_service = ListingApplicationService()


@router.get("/premium")
async def list_premium_listings(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_premium(db, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
