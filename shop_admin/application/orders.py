from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from shop_admin.core import get_logger
from shop_admin.domain.enums import OrderStatus, ConsultationStatus
from shop_admin.domain.errors import ShopAdminError, InvalidRequest, OrderNotFound, NotificationFailed
from shop_admin.domain.models import Order
from shop_admin.infrastructure.notifications import (
    NotificationDispatcher,
    NotificationResult,
    ShippingNotice,
    deliver_best_effort,
)
from shop_admin.infrastructure.repositories import LedgerRepository

logger = get_logger(__name__)

class OrderService:
    def __init__(self, ledger: LedgerRepository, notifier: NotificationDispatcher = None):
        self.ledger = ledger
        self.notifier = notifier

    def get(self, order_id: int) -> Order:
        try:
            order = self.ledger.get_order(order_id)
        except SQLAlchemyError as e:
            logger.error(f"Order lookup failed (id: {order_id}): {e}")
            raise ShopAdminError("Failed to load order")
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def _update(self, order_id: int, **fields) -> Order:
        try:
            order = self.ledger.update_order_status(order_id, **fields)
        except SQLAlchemyError as e:
            logger.error(f"Order update failed (id: {order_id}): {e}")
            raise ShopAdminError("Failed to update order")
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def update_status(self, order_id: int, status: OrderStatus) -> Order:
        return self._update(order_id, status=status.value)

    def update_consultation_status(self, order_id: int, status: ConsultationStatus) -> Order:
        return self._update(order_id, consultation_status=status.value)

    async def send_shipping_notification(self, order_id: int) -> NotificationResult:
        """Tell the customer their parcel shipped. Unlike cancellation notices, failure is reported."""
        order = await run_in_threadpool(self.get, order_id)
        if not order.shipping_company or not order.tracking_number:
            raise InvalidRequest("Shipping company and tracking number are required")
        phone = order.user_phone or order.shipping_phone
        if not phone:
            raise InvalidRequest("Order has no recipient phone number")

        result = await deliver_best_effort(self.notifier.send_shipping(phone, ShippingNotice(
            order_number=order.order_number,
            customer_name=order.user_name or order.shipping_name,
            shipping_company=order.shipping_company,
            tracking_number=order.tracking_number,
        )))
        if not result.success:
            logger.error(f"Shipping notice failed for order {order.order_number}: {result.error}")
            raise NotificationFailed("Failed to send shipping notification")
        return result
