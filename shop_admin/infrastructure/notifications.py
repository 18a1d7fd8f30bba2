"""Kakao alimtalk delivery through the Solapi messaging API.

Senders return a NotificationResult instead of raising. `deliver_best_effort`
additionally folds any exception from a sender into a failed result, so
callers can treat delivery as a plain value.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Optional
from zoneinfo import ZoneInfo

import httpx

from shop_admin.core import get_logger

logger = get_logger(__name__)

SEND_MANY_PATH = "/messages/v4/send-many/detail"

# Variable names registered with the Kakao templates
VAR_ORDER_NUMBER = "#{주문번호}"
VAR_REFUND_AMOUNT = "#{환불금액}"
VAR_REFUND_DATETIME = "#{환불일시}"
VAR_CUSTOMER_NAME = "#{고객명}"
VAR_CARRIER = "#{택배사}"
VAR_TRACKING_NUMBER = "#{운송장번호}"


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CancellationNotice:
    order_number: str
    customer_name: Optional[str]
    total_amount: int
    cancel_reason: Optional[str] = None


@dataclass
class ShippingNotice:
    order_number: str
    customer_name: Optional[str]
    shipping_company: str
    tracking_number: str


def normalize_provider_error(message: Optional[str]) -> str:
    if not message:
        return "Notification delivery failed"
    lowered = message.lower()
    if "insufficient" in lowered or "balance" in lowered:
        return "Insufficient messaging balance"
    if "recipient" in lowered or "receiver" in lowered:
        return "Invalid recipient phone number"
    if "api key" in lowered or "unauthorized" in lowered:
        return "Messaging API credentials are invalid"
    if "template" in lowered or "pf id" in lowered:
        return "Notification template not found"
    return message


async def deliver_best_effort(send: Awaitable[NotificationResult]) -> NotificationResult:
    try:
        return await send
    except Exception as e:
        logger.warning(f"Notification sender raised: {e}", exc_info=True)
        return NotificationResult(success=False, error=str(e) or type(e).__name__)


class NotificationDispatcher:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        api_secret: str,
        sender_profile_id: str,
        cancel_template: str = "order_cancellation",
        shipping_template: str = "shipping_notification",
        timeout: float = 5.0,
        display_timezone: str = "Asia/Seoul",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.sender_profile_id = sender_profile_id
        self.cancel_template = cancel_template
        self.shipping_template = shipping_template
        self.timeout = timeout
        self.display_timezone = ZoneInfo(display_timezone)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_secret and self.sender_profile_id)

    def _auth_header(self) -> str:
        date_time = datetime.now(timezone.utc).isoformat()
        salt = secrets.token_hex(16)
        signature = hmac.new(
            self.api_secret.encode(), f"{date_time}{salt}".encode(), hashlib.sha256
        ).hexdigest()
        return f"HMAC-SHA256 apiKey={self.api_key}, date={date_time}, salt={salt}, signature={signature}"

    async def send_cancellation(self, phone: str, notice: CancellationNotice) -> NotificationResult:
        refunded_at = datetime.now(self.display_timezone).strftime("%Y-%m-%d %H:%M")
        return await self._send(phone, self.cancel_template, {
            VAR_ORDER_NUMBER: notice.order_number,
            VAR_REFUND_AMOUNT: f"{notice.total_amount:,}",
            VAR_REFUND_DATETIME: refunded_at,
        })

    async def send_shipping(self, phone: str, notice: ShippingNotice) -> NotificationResult:
        return await self._send(phone, self.shipping_template, {
            VAR_CUSTOMER_NAME: notice.customer_name or "",
            VAR_ORDER_NUMBER: notice.order_number,
            VAR_CARRIER: notice.shipping_company,
            VAR_TRACKING_NUMBER: notice.tracking_number,
        })

    async def _send(self, phone: str, template_id: str, variables: Dict[str, str]) -> NotificationResult:
        if not self.configured:
            return NotificationResult(success=False, error="Notification sender is not configured")

        payload = {
            "messages": [{
                "to": phone,
                "type": "ATA",
                "kakaoOptions": {
                    "pfId": self.sender_profile_id,
                    "templateId": template_id,
                    "disableSms": True,
                    "variables": variables,
                },
            }],
            "allowDuplicates": False,
        }
        headers = {"Authorization": self._auth_header(), "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(f"{self.api_url}{SEND_MANY_PATH}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Alimtalk request failed: {e}")
            return NotificationResult(success=False, error=normalize_provider_error(str(e)))

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not resp.is_success:
            logger.error(
                "Alimtalk rejected",
                extra={'extra_fields': {'status_code': resp.status_code, 'response': data or resp.text}},
            )
            return NotificationResult(
                success=False,
                error=normalize_provider_error(data.get("errorMessage") or data.get("message") or resp.text),
            )

        for failed in data.get("failedMessageList") or []:
            if failed.get("to") == phone:
                logger.error("Alimtalk message failed", extra={'extra_fields': {'failure': failed}})
                return NotificationResult(
                    success=False,
                    error=normalize_provider_error(
                        failed.get("statusMessage") or failed.get("message") or failed.get("statusCode")
                    ),
                )

        group = data.get("groupInfo") or {}
        return NotificationResult(success=True, message_id=group.get("groupId") or group.get("id"))
