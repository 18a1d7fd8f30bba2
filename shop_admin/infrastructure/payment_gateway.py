from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from shop_admin.core import get_logger

logger = get_logger(__name__)


@dataclass
class GatewayResult:
    ok: bool
    status_code: int
    data: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None


class PaymentGatewayClient:
    """Cancels captured payments through the payment provider's REST API."""

    def __init__(
        self,
        base_url: str,
        api_secret: str,
        auth_scheme: str = "PortOne",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_secret = api_secret
        self.auth_scheme = auth_scheme
        self.timeout = timeout
        self._transport = transport

    async def cancel(
        self,
        payment_id: str,
        reason: str,
        refund_account: Optional[Dict[str, str]] = None,
    ) -> GatewayResult:
        url = f"{self.base_url}/payments/{quote(payment_id, safe='')}/cancel"
        body: Dict[str, Any] = {"reason": reason}
        if refund_account:
            body["refundAccount"] = refund_account
        headers = {
            "Authorization": f"{self.auth_scheme} {self.api_secret}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Payment cancel timed out for {payment_id}")
            return GatewayResult(ok=False, status_code=504, message="Payment gateway timed out")
        except httpx.HTTPError as e:
            logger.error(f"Payment cancel request failed for {payment_id}: {e}")
            return GatewayResult(ok=False, status_code=502, message="Payment gateway unreachable")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"body": data}

        if resp.is_success:
            return GatewayResult(ok=True, status_code=resp.status_code, data=data)

        logger.error(
            f"Payment cancel rejected for {payment_id}",
            extra={'extra_fields': {'status_code': resp.status_code, 'response': data}},
        )
        return GatewayResult(
            ok=False,
            status_code=resp.status_code,
            data=data,
            message=data.get("message") or "Payment cancellation failed",
        )
