from fastapi import APIRouter, Depends

from shop_admin.api.deps import get_ledger, get_payment_gateway, get_notifier
from shop_admin.application.cancellation import CancellationService
from shop_admin.application.schemas import CancelPaymentRequest, CancellationResponse
from shop_admin.domain.errors import InvalidRequest, OrderNotFound

router = APIRouter(prefix="/payments", tags=["payments"])

@router.post("/cancel", response_model=CancellationResponse, response_model_exclude_none=True)
async def cancel_payment(
    payload: CancelPaymentRequest,
    ledger=Depends(get_ledger),
    gateway=Depends(get_payment_gateway),
    notifier=Depends(get_notifier),
):
    """Cancel an order's payment (if any) and give back its coupon and points."""
    service = CancellationService(ledger, gateway, notifier)
    try:
        outcome = await service.cancel(payload)
    except OrderNotFound as e:
        # This endpoint reports unknown orders as bad requests, never 404
        raise InvalidRequest(e.message)

    return CancellationResponse(
        success=True,
        message=outcome.message,
        data=outcome.gateway_data,
        warning=outcome.warning_message,
        warnings=[kind.value for kind in outcome.warnings] or None,
    )
