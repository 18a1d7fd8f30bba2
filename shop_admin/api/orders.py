from fastapi import APIRouter, Depends

from shop_admin.api.deps import get_ledger, get_notifier
from shop_admin.application.orders import OrderService
from shop_admin.application.schemas import (
    ShippingNotificationRequest,
    OrderStatusUpdate,
    ConsultationStatusUpdate,
    OrderRead,
    OrderDetailRead,
    MessageResponse,
)

router = APIRouter(prefix="/orders", tags=["orders"])

@router.post("/send-shipping-notification", response_model=MessageResponse)
async def send_shipping_notification(
    payload: ShippingNotificationRequest,
    ledger=Depends(get_ledger),
    notifier=Depends(get_notifier),
):
    await OrderService(ledger, notifier).send_shipping_notification(payload.order_id)
    return MessageResponse(success=True, message="Shipping notification sent")

@router.get("/{order_id}", response_model=OrderDetailRead)
def get_order(order_id: int, ledger=Depends(get_ledger)):
    return OrderService(ledger).get(order_id)

@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(order_id: int, payload: OrderStatusUpdate, ledger=Depends(get_ledger)):
    return OrderService(ledger).update_status(order_id, payload.status)

@router.patch("/{order_id}/consultation-status", response_model=OrderRead)
def update_consultation_status(order_id: int, payload: ConsultationStatusUpdate, ledger=Depends(get_ledger)):
    return OrderService(ledger).update_consultation_status(order_id, payload.consultation_status)
