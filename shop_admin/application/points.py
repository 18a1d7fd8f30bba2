from typing import List

from sqlalchemy.exc import SQLAlchemyError

from shop_admin.core import get_logger
from shop_admin.domain.enums import PointType
from shop_admin.domain.errors import ShopAdminError, InsufficientPoints
from shop_admin.domain.models import UserPoints, PointHistory
from shop_admin.infrastructure.repositories import LedgerRepository

logger = get_logger(__name__)

class PointService:
    """Manual point adjustments made by admins, always paired with a history row."""

    def __init__(self, ledger: LedgerRepository):
        self.ledger = ledger

    def adjust(self, user_id: str, points: int, reason: str, kind: PointType) -> UserPoints:
        try:
            balance = self.ledger.get_user_points(user_id)
            if kind == PointType.EARN:
                if balance is None:
                    balance = self.ledger.create_user_points(user_id)
                self.ledger.update_user_points(
                    user_id,
                    points=balance.points + points,
                    total_used=balance.total_used,
                    total_earned=balance.total_earned + points,
                )
            else:
                available = balance.points if balance else 0
                if available < points:
                    raise InsufficientPoints(f"User {user_id} has only {available} points")
                self.ledger.update_user_points(
                    user_id,
                    points=balance.points - points,
                    total_used=balance.total_used + points,
                )
            self.ledger.add_point_history(user_id, points, kind.value, reason)
            updated = self.ledger.get_user_points(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Point adjustment failed for user {user_id}: {e}")
            raise ShopAdminError("Failed to adjust points")

        logger.info(
            f"Adjusted points for user {user_id}",
            extra={'extra_fields': {'user_id': user_id, 'points': points, 'type': kind.value, 'reason': reason}},
        )
        return updated

    def history(self, user_id: str, limit: int = 50) -> List[PointHistory]:
        try:
            return self.ledger.list_point_history(user_id, limit)
        except SQLAlchemyError as e:
            logger.error(f"Point history query failed for user {user_id}: {e}")
            raise ShopAdminError("Failed to fetch point history")
