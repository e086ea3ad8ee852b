# src/pm_admin/api/router.py
"""Admin REST API. Every endpoint requires role = 'admin'."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_admin.application.schemas import ForceExpireRequest
from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.enums import TransactionStatus
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_admin
from src.pm_gateway.user.db_models import UserModel

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.post("/boosts/{listing_id}/expire")
async def force_expire_boost(
    listing_id: str,
    body: ForceExpireRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.force_expire_boost(db, listing_id, body.reason, str(admin.id))
    resp = success_response(data.model_dump(), message="Boost expired")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/boosts")
async def list_active_boosts(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_active_boosts(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/ticker")
async def get_ticker(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_ticker(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/transactions")
async def list_transactions(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: TransactionStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_transactions(db, status.value if status else None, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
