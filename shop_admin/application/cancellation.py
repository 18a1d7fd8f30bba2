"""Order cancellation: payment cancel, ledger recovery, status write, customer notice.

Orders without a payment reference are cancelled locally, and only when they
never charged anything. Orders with a payment reference are cancelled at the
gateway first; if the gateway refuses, nothing in the ledger changes. Once the
gateway has cancelled, the cancellation cannot be rolled back from here, so
recovery and status-write failures are reported as warnings on a successful
outcome and logged with the order number for manual reconciliation.

Ledger steps run in the threadpool; only the gateway and notifier calls are
awaited on the event loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from shop_admin.core import get_logger
from shop_admin.domain.enums import OrderStatus, ConsultationStatus
from shop_admin.domain.errors import (
    ShopAdminError,
    InvalidRequest,
    OrderNotFound,
    PaymentRequiredMismatch,
    GatewayRejected,
)
from shop_admin.domain.models import Order
from shop_admin.infrastructure.notifications import (
    CancellationNotice,
    NotificationDispatcher,
    NotificationResult,
    deliver_best_effort,
)
from shop_admin.infrastructure.payment_gateway import PaymentGatewayClient
from shop_admin.infrastructure.repositories import LedgerRepository
from .recovery import RecoveryEngine, RecoveryResult
from .schemas import CancelPaymentRequest

logger = get_logger(__name__)

DEFAULT_CANCEL_REASON = "admin request"


class CancellationStatus(str, Enum):
    COMPLETED = "completed"
    COMPLETED_WITH_WARNING = "completed_with_warning"


class WarningKind(str, Enum):
    RECOVERY_FAILED = "recovery_failed"
    STATUS_UPDATE_FAILED = "status_update_failed"


WARNING_MESSAGES = {
    WarningKind.RECOVERY_FAILED: "coupon/point recovery failed and needs manual reconciliation",
    WarningKind.STATUS_UPDATE_FAILED: "order status update failed and must be set manually",
}


@dataclass
class CancellationOutcome:
    message: str
    warnings: List[WarningKind] = field(default_factory=list)
    gateway_data: Optional[Dict[str, Any]] = None
    recovery: Optional[RecoveryResult] = None
    notification: Optional[NotificationResult] = None

    @property
    def status(self) -> CancellationStatus:
        if self.warnings:
            return CancellationStatus.COMPLETED_WITH_WARNING
        return CancellationStatus.COMPLETED

    @property
    def warning_message(self) -> Optional[str]:
        if not self.warnings:
            return None
        return f"{self.message}, but " + "; ".join(WARNING_MESSAGES[kind] for kind in self.warnings)


class CancellationService:
    def __init__(
        self,
        ledger: LedgerRepository,
        gateway: PaymentGatewayClient,
        notifier: NotificationDispatcher,
        recovery: Optional[RecoveryEngine] = None,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.notifier = notifier
        self.recovery = recovery or RecoveryEngine(ledger)

    async def cancel(self, request: CancelPaymentRequest) -> CancellationOutcome:
        if not request.payment_id and request.order_id is None:
            raise InvalidRequest("paymentId or orderId is required")
        if request.refund_account is not None and not request.payment_id:
            raise InvalidRequest("refundAccount is only accepted together with paymentId")

        if request.payment_id:
            return await self._cancel_paid(request)
        return await self._cancel_unpaid(request.order_id, request.reason or DEFAULT_CANCEL_REASON)

    async def _cancel_unpaid(self, order_id: int, reason: str) -> CancellationOutcome:
        try:
            order = await run_in_threadpool(self.ledger.get_order, order_id)
        except SQLAlchemyError as e:
            logger.error(f"Order lookup failed (id: {order_id}): {e}")
            raise ShopAdminError("Failed to load order")
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        if order.total_amount > 0:
            raise PaymentRequiredMismatch(
                f"Order {order.order_number} was charged {order.total_amount}; cancel it through its payment"
            )

        logger.info(f"Cancelling unpaid order {order.order_number}")
        return await self._finish(order_id, reason, "Order cancelled")

    async def _cancel_paid(self, request: CancelPaymentRequest) -> CancellationOutcome:
        reason = request.reason or DEFAULT_CANCEL_REASON
        refund_account = request.refund_account
        logger.info(
            f"Cancelling payment {request.payment_id}",
            extra={'extra_fields': {
                'payment_id': request.payment_id,
                'order_id': request.order_id,
                'reason': reason,
                'refund_account': refund_account.masked() if refund_account else None,
            }},
        )

        result = await self.gateway.cancel(
            request.payment_id,
            reason,
            refund_account.to_gateway() if refund_account else None,
        )
        if not result.ok:
            raise GatewayRejected(result.message or "Payment cancellation failed", status_code=result.status_code)

        if request.order_id is None:
            return CancellationOutcome(message="Payment cancelled", gateway_data=result.data)
        return await self._finish(request.order_id, reason, "Payment cancelled", gateway_data=result.data)

    async def _finish(
        self,
        order_id: int,
        reason: str,
        message: str,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> CancellationOutcome:
        outcome = CancellationOutcome(message=message, gateway_data=gateway_data)

        outcome.recovery = await run_in_threadpool(self.recovery.restore, order_id)
        if not outcome.recovery.success or outcome.recovery.error:
            outcome.warnings.append(WarningKind.RECOVERY_FAILED)
            logger.error(
                f"Recovery incomplete for cancelled order {order_id}: {outcome.recovery.error}",
                extra={'extra_fields': {'order_id': order_id, 'recovery': vars(outcome.recovery)}},
            )

        order = await run_in_threadpool(self._mark_cancelled, order_id)
        if order is None:
            outcome.warnings.append(WarningKind.STATUS_UPDATE_FAILED)
            order = await run_in_threadpool(self._load_order, order_id)

        if order is not None and order.user_phone:
            outcome.notification = await deliver_best_effort(self.notifier.send_cancellation(
                order.user_phone,
                CancellationNotice(
                    order_number=order.order_number,
                    customer_name=order.user_name,
                    total_amount=order.total_amount,
                    cancel_reason=reason,
                ),
            ))
            if not outcome.notification.success:
                logger.warning(
                    f"Cancellation notice not delivered for order {order.order_number}: {outcome.notification.error}"
                )

        return outcome

    def _mark_cancelled(self, order_id: int) -> Optional[Order]:
        try:
            order = self.ledger.update_order_status(
                order_id,
                status=OrderStatus.CANCELLED.value,
                consultation_status=ConsultationStatus.CANCELLED.value,
            )
        except SQLAlchemyError as e:
            logger.error(f"Status update failed for cancelled order {order_id}: {e}")
            return None
        if order is None:
            logger.error(f"Status update found no order {order_id}")
        return order

    def _load_order(self, order_id: int) -> Optional[Order]:
        try:
            return self.ledger.get_order(order_id)
        except SQLAlchemyError as e:
            logger.warning(f"Order reload for cancellation notice failed (id: {order_id}): {e}")
            return None
