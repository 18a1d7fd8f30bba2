from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, ForeignKey, Integer, Boolean, DateTime, JSON
from datetime import datetime
from typing import Optional

class Base(DeclarativeBase):
    pass

class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(primary_key=True)
    # Human-facing order number shown to customers and in reconciliation logs
    order_number: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    status: Mapped[str] = mapped_column(String(30), default="pending")
    consultation_status: Mapped[str] = mapped_column(String(40), default="chatting_required")
    total_amount: Mapped[int] = mapped_column(Integer, default=0)
    shipping_fee: Mapped[int] = mapped_column(Integer, default=0)
    coupon_discount: Mapped[int] = mapped_column(Integer, default=0)
    used_points: Mapped[int] = mapped_column(Integer, default=0)
    # Guest checkouts have no user (no FK - users live in the auth store)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    user_coupon_id: Mapped[Optional[int]] = mapped_column(ForeignKey("user_coupons.id"), nullable=True)
    payment_key: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    user_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    shipping_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    shipping_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    shipping_company: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    items: Mapped[list["OrderItem"]] = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)
    # Product snapshot captured at checkout (no FK - products may be deleted later)
    product_id: Mapped[str] = mapped_column(String(64))
    product_name: Mapped[str] = mapped_column(String(200))
    product_price: Mapped[int] = mapped_column(Integer, default=0)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    option_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    option_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    option_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    # [{id, name, price, quantity}]
    selected_addons: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    # [{setting_id, setting_name, type_id, type_name}]
    selected_option_settings: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    order: Mapped[Order] = relationship("Order", back_populates="items")

class UserCoupon(Base):
    __tablename__ = "user_coupons"
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    # Coupon definitions are managed by the coupon editor
    coupon_id: Mapped[int]
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # Weak back-reference to the consuming order; plain column to avoid an FK cycle
    order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

class UserPoints(Base):
    __tablename__ = "user_points"
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    points: Mapped[int] = mapped_column(Integer, default=0)
    total_earned: Mapped[int] = mapped_column(Integer, default=0)
    total_used: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

class PointHistory(Base):
    """Append-only point ledger; corrections are new rows, never edits."""
    __tablename__ = "point_history"
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    # Always positive; direction is carried by type ("earn" | "use")
    points: Mapped[int] = mapped_column(Integer)
    type: Mapped[str] = mapped_column(String(10))
    reason: Mapped[str] = mapped_column(String(255))
    order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
