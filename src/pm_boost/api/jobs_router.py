"""Scheduler-invoked jobs. All require `X-Cron-Secret`.

POST /jobs/expire-premium-listings      — demote elapsed boosts
POST /jobs/expire-pending-transactions  — close abandoned pending payments
POST /jobs/retry-settlement-effects     — re-apply effects that failed after settlement
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.expiry_service import ExpiryService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.cron import require_cron_secret

router = APIRouter(
    prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_cron_secret)]
)

_service = ExpiryService()


@router.post("/expire-premium-listings")
async def expire_premium_listings(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.expire_premium_listings(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/expire-pending-transactions")
async def expire_pending_transactions(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.expire_pending_transactions(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/retry-settlement-effects")
async def retry_settlement_effects(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.retry_settlement_effects(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
