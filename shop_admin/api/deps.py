from fastapi import Depends
from sqlalchemy.orm import Session

from shop_admin.core_settings import get_settings
from shop_admin.infrastructure.db import get_db
from shop_admin.infrastructure.notifications import NotificationDispatcher
from shop_admin.infrastructure.payment_gateway import PaymentGatewayClient
from shop_admin.infrastructure.repositories import LedgerRepository

def get_ledger(db: Session = Depends(get_db)) -> LedgerRepository:
    return LedgerRepository(db)

def get_payment_gateway() -> PaymentGatewayClient:
    settings = get_settings()
    return PaymentGatewayClient(
        base_url=settings.PAYMENT_GATEWAY_URL,
        api_secret=settings.PAYMENT_API_SECRET,
        auth_scheme=settings.PAYMENT_AUTH_SCHEME,
        timeout=settings.PAYMENT_TIMEOUT,
    )

def get_notifier() -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        api_url=settings.NOTIFY_API_URL,
        api_key=settings.SOLAPI_API_KEY,
        api_secret=settings.SOLAPI_API_SECRET,
        sender_profile_id=settings.KAKAO_PF_ID,
        cancel_template=settings.KAKAO_TEMPLATE_CANCEL,
        shipping_template=settings.KAKAO_TEMPLATE_SHIPPING,
        timeout=settings.NOTIFY_TIMEOUT,
        display_timezone=settings.NOTIFY_TIMEZONE,
    )
