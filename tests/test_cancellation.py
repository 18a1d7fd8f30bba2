import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError

from shop_admin.application.cancellation import (
    CancellationService,
    CancellationStatus,
    WarningKind,
    DEFAULT_CANCEL_REASON,
)
from shop_admin.application.schemas import CancelPaymentRequest
from shop_admin.domain.errors import InvalidRequest, OrderNotFound, PaymentRequiredMismatch, GatewayRejected
from shop_admin.domain.models import Order, UserCoupon, UserPoints, PointHistory
from shop_admin.infrastructure.payment_gateway import GatewayResult


@pytest.fixture
def service(ledger, gateway, notifier):
    return CancellationService(ledger, gateway, notifier)


def cancel(service, **payload):
    return asyncio.run(service.cancel(CancelPaymentRequest(**payload)))


def test_requires_payment_or_order_id(service, gateway):
    with pytest.raises(InvalidRequest):
        cancel(service)
    with pytest.raises(InvalidRequest):
        cancel(service, paymentId="  ", orderId=None)
    assert gateway.calls == []


def test_refund_account_needs_payment_id(service, make_order):
    order = make_order()
    with pytest.raises(InvalidRequest):
        cancel(service, orderId=order.id, refundAccount={"bank": "KB", "number": "123-45-678901", "holderName": "Kim"})


def test_zero_amount_order_cancelled_locally(db, service, gateway, notifier, make_order, make_coupon):
    coupon = make_coupon()
    order = make_order(
        user_id="user-1",
        user_coupon_id=coupon.id,
        total_amount=0,
        coupon_discount=15000,
        user_name="Kim",
        user_phone="01012345678",
    )

    outcome = cancel(service, orderId=order.id)

    assert outcome.status == CancellationStatus.COMPLETED
    assert outcome.message == "Order cancelled"
    assert outcome.warnings == []
    assert outcome.recovery.coupon_restored is True
    assert gateway.calls == []

    db.expire_all()
    order = db.get(Order, order.id)
    assert order.status == "cancelled"
    assert order.consultation_status == "cancelled"
    assert db.get(UserCoupon, coupon.id).is_used is False
    assert db.query(UserPoints).count() == 0
    assert db.query(PointHistory).count() == 0

    phone, notice = notifier.cancellations[0]
    assert phone == "01012345678"
    assert notice.order_number == order.order_number
    assert notice.cancel_reason == DEFAULT_CANCEL_REASON


def test_charged_order_without_payment_id_is_rejected(db, service, make_order, make_coupon):
    coupon = make_coupon()
    order = make_order(user_id="user-1", user_coupon_id=coupon.id, total_amount=12000)

    with pytest.raises(PaymentRequiredMismatch):
        cancel(service, orderId=order.id)

    db.expire_all()
    assert db.get(Order, order.id).status == "pending"
    assert db.get(UserCoupon, coupon.id).is_used is True


def test_unknown_unpaid_order(service):
    with pytest.raises(OrderNotFound):
        cancel(service, orderId=404)


def test_gateway_refusal_leaves_ledger_untouched(db, service, gateway, notifier, make_order, make_coupon, make_points):
    coupon = make_coupon()
    make_points(points=0, total_used=2000)
    order = make_order(user_id="user-1", user_coupon_id=coupon.id, used_points=2000, total_amount=30000,
                       user_phone="01012345678")
    gateway.result = GatewayResult(ok=False, status_code=402, data={"message": "Already cancelled"},
                                   message="Already cancelled")

    with pytest.raises(GatewayRejected) as exc_info:
        cancel(service, paymentId="pay-1", orderId=order.id)

    assert exc_info.value.status_code == 402
    assert exc_info.value.message == "Already cancelled"
    db.expire_all()
    assert db.get(Order, order.id).status == "pending"
    assert db.get(UserCoupon, coupon.id).is_used is True
    assert db.query(UserPoints).one().points == 0
    assert notifier.cancellations == []


def test_paid_order_full_cancellation(db, service, gateway, notifier, make_order, make_coupon, make_points):
    coupon = make_coupon()
    make_points(points=1000, total_used=3000)
    order = make_order(user_id="user-1", user_coupon_id=coupon.id, used_points=3000, total_amount=27000,
                       user_name="Kim", user_phone="01012345678")

    outcome = cancel(service, paymentId="pay-1", orderId=order.id)

    assert outcome.status == CancellationStatus.COMPLETED
    assert outcome.message == "Payment cancelled"
    assert outcome.gateway_data == {"cancellation": {"status": "SUCCEEDED"}}
    assert gateway.calls == [{"payment_id": "pay-1", "reason": DEFAULT_CANCEL_REASON, "refund_account": None}]
    assert outcome.notification.success is True

    db.expire_all()
    assert db.get(Order, order.id).status == "cancelled"
    assert db.query(UserPoints).one().points == 4000
    assert notifier.cancellations[0][1].total_amount == 27000


def test_paid_cancellation_without_order_skips_ledger(db, service, gateway, notifier):
    outcome = cancel(service, paymentId="pay-1", reason="customer changed mind")

    assert outcome.status == CancellationStatus.COMPLETED
    assert outcome.recovery is None
    assert gateway.calls[0]["reason"] == "customer changed mind"
    assert notifier.cancellations == []


def test_refund_account_forwarded_to_gateway(service, gateway):
    cancel(
        service,
        paymentId="pay-vbank",
        refundAccount={"bank": "KB", "number": "123-45-678901", "holderName": "Kim"},
    )

    assert gateway.calls[0]["refund_account"] == {"bank": "KB", "number": "123-45-678901", "holderName": "Kim"}


def test_status_write_failure_becomes_warning(db, service, ledger, make_order, monkeypatch):
    order = make_order(user_id="user-1", total_amount=5000, user_phone="01012345678")

    def broken_update(order_id, **fields):
        raise SQLAlchemyError("lock timeout")

    monkeypatch.setattr(ledger, "update_order_status", broken_update)
    outcome = cancel(service, paymentId="pay-1", orderId=order.id)

    assert outcome.status == CancellationStatus.COMPLETED_WITH_WARNING
    assert outcome.warnings == [WarningKind.STATUS_UPDATE_FAILED]
    assert "order status update failed" in outcome.warning_message
    assert outcome.notification is not None


def test_notification_failure_never_fails_cancellation(db, service, notifier, make_order):
    notifier.error = RuntimeError("socket closed")
    order = make_order(total_amount=0, user_phone="01012345678")

    outcome = cancel(service, orderId=order.id)

    assert outcome.status == CancellationStatus.COMPLETED
    assert outcome.notification.success is False
    assert "socket closed" in outcome.notification.error
    db.expire_all()
    assert db.get(Order, order.id).status == "cancelled"


def test_unknown_order_after_gateway_cancel_reports_both_warnings(service, gateway, notifier):
    outcome = cancel(service, paymentId="pay-1", orderId=777)

    assert outcome.status == CancellationStatus.COMPLETED_WITH_WARNING
    assert outcome.warnings == [WarningKind.RECOVERY_FAILED, WarningKind.STATUS_UPDATE_FAILED]
    assert outcome.warning_message.startswith("Payment cancelled, but ")
    assert len(gateway.calls) == 1
    assert notifier.cancellations == []


def test_order_without_phone_gets_no_notice(service, notifier, make_order):
    order = make_order(total_amount=0)

    outcome = cancel(service, orderId=order.id)

    assert outcome.notification is None
    assert notifier.cancellations == []
