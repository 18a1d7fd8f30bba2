"""Narrow read-one / update-one / insert-one access to the shop ledger tables.

Every write commits by itself. Callers composing several writes get no
transaction around them; partial failures are theirs to report.
"""

from datetime import datetime
from typing import Optional, Iterable, List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_admin.domain.models import Order, OrderItem, UserCoupon, UserPoints, PointHistory


class LedgerRepository:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _execute_write(self, stmt) -> int:
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return result.rowcount

    # Orders

    def get_order(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def update_order_status(
        self,
        order_id: int,
        status: Optional[str] = None,
        consultation_status: Optional[str] = None,
    ) -> Optional[Order]:
        order = self.get_order(order_id)
        if order is None:
            return None
        if status is not None:
            order.status = status
        if consultation_status is not None:
            order.consultation_status = consultation_status
        order.updated_at = datetime.utcnow()
        self._commit()
        self.db.refresh(order)
        return order

    # Coupons

    def reset_user_coupon(self, user_coupon_id: int) -> bool:
        """Mark a coupon unused again. Returns False when no row matched."""
        matched = self._execute_write(
            update(UserCoupon)
            .where(UserCoupon.id == user_coupon_id)
            .values(is_used=False, used_at=None, order_id=None, updated_at=datetime.utcnow())
        )
        return matched > 0

    # Points

    def get_user_points(self, user_id: str) -> Optional[UserPoints]:
        return self.db.execute(
            select(UserPoints).where(UserPoints.user_id == user_id)
        ).scalar_one_or_none()

    def update_user_points(
        self,
        user_id: str,
        points: int,
        total_used: int,
        total_earned: Optional[int] = None,
    ) -> bool:
        values = {"points": points, "total_used": total_used, "updated_at": datetime.utcnow()}
        if total_earned is not None:
            values["total_earned"] = total_earned
        matched = self._execute_write(
            update(UserPoints).where(UserPoints.user_id == user_id).values(**values)
        )
        return matched > 0

    def create_user_points(self, user_id: str) -> UserPoints:
        row = UserPoints(user_id=user_id, points=0, total_earned=0, total_used=0)
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return row

    def add_point_history(
        self,
        user_id: str,
        points: int,
        kind: str,
        reason: str,
        order_id: Optional[int] = None,
    ) -> PointHistory:
        entry = PointHistory(user_id=user_id, points=points, type=kind, reason=reason, order_id=order_id)
        self.db.add(entry)
        self._commit()
        self.db.refresh(entry)
        return entry

    def list_point_history(self, user_id: str, limit: int = 50) -> List[PointHistory]:
        stmt = (
            select(PointHistory)
            .where(PointHistory.user_id == user_id)
            .order_by(PointHistory.created_at.desc(), PointHistory.id.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    # Sales

    def list_sales_rows(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[OrderItem]:
        """Order items whose parent order was created within [start, end]."""
        stmt = select(OrderItem).join(Order, OrderItem.order_id == Order.id)
        if start is not None:
            stmt = stmt.where(Order.created_at >= start)
        if end is not None:
            stmt = stmt.where(Order.created_at <= end)
        if statuses:
            stmt = stmt.where(Order.status.in_(list(statuses)))
        stmt = stmt.order_by(OrderItem.id)
        return list(self.db.execute(stmt).scalars())
