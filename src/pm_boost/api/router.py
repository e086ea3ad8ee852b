"""pm_boost REST endpoints (client-facing).

GET  /packages                           — active package catalogue
POST /payments/initiate                  — start a mobile-money charge (JWT, rate limited)
GET  /payments/{transaction_id}/status   — poll a transaction (JWT, owner only)
GET  /ticker                             — current ticker occupant
POST /ticker/claim                       — direct ticker claim (JWT, owner only)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_boost.application.catalog_service import PackageCatalogService
from src.pm_boost.application.payment_service import PaymentApplicationService
from src.pm_boost.application.schemas import InitiatePaymentRequest, TickerClaimRequest
from src.pm_boost.application.ticker_claim_service import TickerClaimService
from src.pm_boost.application.ticker_service import TickerService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import get_current_user
from src.pm_gateway.middleware.rate_limit import limit_payment_initiation
from src.pm_gateway.user.db_models import UserModel

router = APIRouter(tags=["boost"])

_catalog = PackageCatalogService()
_payments = PaymentApplicationService()
_ticker = TickerService()
_ticker_claim = TickerClaimService()


@router.get("/packages")
async def list_packages(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _catalog.list_packages(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/payments/initiate", status_code=201)
async def initiate_payment(
    body: InitiatePaymentRequest,
    current_user: Annotated[UserModel, Depends(limit_payment_initiation)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _payments.initiate_payment(db, str(current_user.id), body)
    resp = success_response(data.model_dump(), message=data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/payments/{transaction_id}/status")
async def get_payment_status(
    transaction_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _payments.check_payment_status(db, str(current_user.id), transaction_id)
    resp = success_response(data.model_dump(), message=data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/ticker")
async def get_ticker(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _ticker.get_ticker(db)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/ticker/claim")
async def claim_ticker(
    body: TickerClaimRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _ticker_claim.claim_ticker(db, str(current_user.id), body)
    resp = success_response(data.model_dump(), message=data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
