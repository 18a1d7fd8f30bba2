"""Reverses the coupon and point side effects of a cancelled order.

The coupon and point reversals are independent: either may fail without the
other being skipped. Nothing here records that an order was already restored,
so restoring the same order twice credits its points twice; callers must not
retry blindly.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from shop_admin.core import get_logger
from shop_admin.domain.enums import PointType
from shop_admin.infrastructure.repositories import LedgerRepository

logger = get_logger(__name__)


@dataclass
class RecoveryResult:
    success: bool
    coupon_restored: bool = False
    point_restored: bool = False
    error: Optional[str] = None


class RecoveryEngine:
    def __init__(self, ledger: LedgerRepository):
        self.ledger = ledger

    def restore(self, order_id: int) -> RecoveryResult:
        try:
            order = self.ledger.get_order(order_id)
        except SQLAlchemyError as e:
            logger.error(f"Order lookup failed during recovery (id: {order_id}): {e}")
            return RecoveryResult(success=False, error="Order lookup failed")
        if order is None:
            return RecoveryResult(success=False, error="Order not found")

        order_number = order.order_number
        user_id = order.user_id
        used_points = order.used_points or 0
        user_coupon_id = order.user_coupon_id
        errors: List[str] = []

        coupon_restored = False
        if user_coupon_id:
            try:
                coupon_restored = self.ledger.reset_user_coupon(user_coupon_id)
                if not coupon_restored:
                    errors.append("user coupon not found")
            except SQLAlchemyError as e:
                logger.error(f"Coupon restore failed (order: {order_number}): {e}")
                errors.append("coupon restore failed")

        point_restored = False
        if used_points > 0 and user_id:
            point_restored = self._restore_points(order_id, order_number, user_id, used_points, errors)

        if errors:
            logger.warning(
                f"Partial recovery for order {order_number}",
                extra={'extra_fields': {
                    'order_number': order_number,
                    'coupon_restored': coupon_restored,
                    'point_restored': point_restored,
                    'errors': errors,
                }},
            )
        return RecoveryResult(
            success=True,
            coupon_restored=coupon_restored,
            point_restored=point_restored,
            error="; ".join(errors) or None,
        )

    def _restore_points(self, order_id: int, order_number: str, user_id: str, used_points: int, errors: List[str]) -> bool:
        try:
            balance = self.ledger.get_user_points(user_id)
            if balance is None:
                errors.append("point balance not found")
                return False
            self.ledger.update_user_points(
                user_id,
                points=balance.points + used_points,
                total_used=max(0, balance.total_used - used_points),
            )
        except SQLAlchemyError as e:
            logger.error(f"Point restore failed (order: {order_number}): {e}")
            errors.append("point restore failed")
            return False

        try:
            self.ledger.add_point_history(
                user_id,
                used_points,
                PointType.EARN.value,
                f"Points restored for cancelled order ({order_number})",
                order_id=order_id,
            )
        except SQLAlchemyError as e:
            # Balance is already credited; only the audit row is missing
            logger.error(f"Point history insert failed (order: {order_number}): {e}")
            errors.append("point history insert failed")
        return True
