from fastapi import APIRouter, Depends, Query

from shop_admin.api.deps import get_ledger
from shop_admin.application.points import PointService
from shop_admin.application.schemas import PointAdjustRequest, UserPointsRead, PointHistoryRead

router = APIRouter(prefix="/users", tags=["points"])

@router.post("/{user_id}/points/adjust", response_model=UserPointsRead)
def adjust_points(user_id: str, payload: PointAdjustRequest, ledger=Depends(get_ledger)):
    return PointService(ledger).adjust(user_id, payload.points, payload.reason, payload.type)

@router.get("/{user_id}/points/history", response_model=list[PointHistoryRead])
def point_history(user_id: str, limit: int = Query(50, ge=1, le=500), ledger=Depends(get_ledger)):
    return PointService(ledger).history(user_id, limit)
