"""PayGate Global HTTP client (Togo mobile money: T-Money, Flooz).

PayGate authenticates with `auth_token` in the JSON body, not a header.
The transaction id is sent as `identifier`; PayGate refuses a second charge
for an identifier it has already seen (status 6), so retried calls cannot
double-charge.

Endpoints:
  POST /api/v1/pay     -> {"tx_reference": "...", "status": 0|2|4|6}
  POST /api/v2/status  -> {"tx_reference": "...", "status": 0|2|4|6, ...}
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import settings
from src.pm_common.enums import MobileNetwork

logger = logging.getLogger(__name__)

_PAY_PATH = "/api/v1/pay"
_STATUS_PATH = "/api/v2/status"

_NETWORK_CODES: dict[MobileNetwork, str] = {
    MobileNetwork.TMONEY: "TMONEY",
    MobileNetwork.FLOOZ: "FLOOZ",
}


class PayGateError(Exception):
    """PayGate unreachable, misconfigured, or answered with an unusable response."""


@dataclass
class PayGateResult:
    status: int
    tx_reference: str | None


class PayGateClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.PAYGATE_BASE_URL
        self._api_key = api_key if api_key is not None else settings.PAYGATE_API_KEY
        self._timeout = timeout or settings.PAYGATE_TIMEOUT_SECONDS
        self._transport = transport

    async def request_payment(
        self,
        *,
        identifier: str,
        phone_number: str,
        amount: int,
        network: MobileNetwork,
        description: str,
    ) -> PayGateResult:
        data = await self._post(
            _PAY_PATH,
            {
                "phone_number": phone_number,
                "amount": amount,
                "identifier": identifier,
                "network": _NETWORK_CODES[network],
                "description": description,
            },
        )
        return _to_result(data)

    async def check_status(self, identifier: str) -> PayGateResult:
        data = await self._post(_STATUS_PATH, {"identifier": identifier})
        return _to_result(data)

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise PayGateError("PAYGATE_API_KEY is not configured")
        payload = {"auth_token": self._api_key, **body}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("PayGate %s unreachable: %s", path, exc)
            raise PayGateError(f"unreachable: {exc.__class__.__name__}") from exc

        if resp.is_error:
            logger.warning("PayGate %s -> HTTP %d: %s", path, resp.status_code, resp.text[:500])
            raise PayGateError(f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise PayGateError("response is not JSON") from exc
        if not isinstance(data, dict) or "status" not in data:
            raise PayGateError(f"unexpected response: {str(data)[:200]}")
        return data


def _to_result(data: dict[str, Any]) -> PayGateResult:
    try:
        status = int(data["status"])
    except (TypeError, ValueError) as exc:
        raise PayGateError(f"non-numeric status: {data['status']!r}") from exc
    # Older API versions answer `reference` instead of `tx_reference`.
    reference = data.get("tx_reference") or data.get("reference")
    return PayGateResult(status=status, tx_reference=str(reference) if reference else None)
