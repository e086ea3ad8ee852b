"""PayGate settlement callback.

POST /payments/webhook/paygate

The signature covers the raw request body, so the body is read as bytes and
verified before it is parsed.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_boost.application.schemas import WebhookPayload
from src.pm_boost.application.settlement_service import SettlementService
from src.pm_boost.infrastructure.webhook_signature import SIGNATURE_HEADER, verify_signature
from src.pm_common.database import get_db_session
from src.pm_common.errors import InvalidWebhookPayloadError, InvalidWebhookSignatureError
from src.pm_common.response import ApiResponse, success_response

router = APIRouter(prefix="/payments/webhook", tags=["webhooks"])

_service = SettlementService()


@router.post("/paygate")
async def paygate_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    body = await request.body()
    if not verify_signature(
        body, request.headers.get(SIGNATURE_HEADER), settings.PAYGATE_WEBHOOK_SECRET
    ):
        raise InvalidWebhookSignatureError()
    try:
        payload = WebhookPayload.model_validate_json(body)
    except ValidationError as exc:
        raise InvalidWebhookPayloadError(f"{exc.error_count()} validation error(s)") from exc

    data = await _service.process_webhook(db, payload)
    resp = success_response(data.model_dump(), message=data.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
