import itertools
import os

# Must be set before shop_admin builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_API_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from shop_admin.api.deps import get_payment_gateway, get_notifier
from shop_admin.domain.models import Base, Order, OrderItem, UserCoupon, UserPoints
from shop_admin.infrastructure.db import engine, SessionLocal
from shop_admin.infrastructure.notifications import NotificationResult
from shop_admin.infrastructure.payment_gateway import GatewayResult
from shop_admin.infrastructure.repositories import LedgerRepository


class FakeGateway:
    def __init__(self):
        self.result = GatewayResult(ok=True, status_code=200, data={"cancellation": {"status": "SUCCEEDED"}})
        self.calls = []

    async def cancel(self, payment_id, reason, refund_account=None):
        self.calls.append({"payment_id": payment_id, "reason": reason, "refund_account": refund_account})
        return self.result


class FakeNotifier:
    def __init__(self):
        self.result = NotificationResult(success=True, message_id="G4V-1")
        self.error = None
        self.cancellations = []
        self.shipments = []

    async def send_cancellation(self, phone, notice):
        self.cancellations.append((phone, notice))
        if self.error:
            raise self.error
        return self.result

    async def send_shipping(self, phone, notice):
        self.shipments.append((phone, notice))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def ledger(db):
    return LedgerRepository(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def make_order(db):
    numbers = itertools.count(1)

    def _make(items=(), **fields):
        fields.setdefault("order_number", f"ORD-2024-{next(numbers):05d}")
        order = Order(**fields)
        for item in items:
            order.items.append(OrderItem(**item))
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(user_id="user-1", is_used=True, **fields):
        coupon = UserCoupon(user_id=user_id, coupon_id=fields.pop("coupon_id", 1), is_used=is_used, **fields)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def make_points(db):
    def _make(user_id="user-1", points=0, total_used=0, total_earned=0):
        row = UserPoints(user_id=user_id, points=points, total_used=total_used, total_earned=total_earned)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make


@pytest.fixture
def client(db, gateway, notifier):
    from shop_admin.main import app

    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
