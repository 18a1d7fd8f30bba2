from pydantic import BaseModel, Field, ValidationError, field_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from shop_admin.core import get_logger, mask_account_number
from shop_admin.domain.enums import OrderStatus, ConsultationStatus, PointType

logger = get_logger(__name__)

def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value

def _id_to_str(value):
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value

# Cancellation

class RefundAccount(BaseModel):
    bank: str
    number: str
    holder_name: str = Field(alias="holderName")

    class Config:
        populate_by_name = True

    def masked(self) -> Dict[str, str]:
        return {"bank": self.bank, "number": mask_account_number(self.number), "holderName": self.holder_name}

    def to_gateway(self) -> Dict[str, str]:
        return {"bank": self.bank, "number": self.number, "holderName": self.holder_name}

class CancelPaymentRequest(BaseModel):
    payment_id: Optional[str] = Field(None, alias="paymentId")
    order_id: Optional[int] = Field(None, alias="orderId")
    reason: Optional[str] = None
    refund_account: Optional[RefundAccount] = Field(None, alias="refundAccount")

    class Config:
        populate_by_name = True

    @field_validator("payment_id", "order_id", "reason", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _blank_to_none(value)

class CancellationResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    warning: Optional[str] = None
    warnings: Optional[List[str]] = None

# Embedded order-item selections

class SelectedAddon(BaseModel):
    """One addon chosen on an order item; missing price is 0, missing quantity is 1."""
    id: Optional[str] = None
    name: Optional[str] = None
    price: int = Field(0, ge=0)
    quantity: int = Field(1, ge=1)

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _id_to_str(value)

    @field_validator("price", mode="before")
    @classmethod
    def default_price(cls, value):
        return 0 if value is None else value

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, value):
        return 1 if value is None else value

class SelectedOptionSetting(BaseModel):
    """Free-form configuration the customer picked for an item; stored, never priced."""
    setting_id: Optional[str] = None
    setting_name: Optional[str] = None
    type_id: Optional[str] = None
    type_name: Optional[str] = None

    @field_validator("setting_id", "setting_name", "type_id", "type_name", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _id_to_str(value)

def parse_selections(model, raw, item_id=None) -> list:
    """Validate a JSON list column entry by entry, dropping entries that don't fit `model`."""
    if not raw:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring non-list {model.__name__} payload on order item {item_id}")
        return []
    parsed = []
    for entry in raw:
        try:
            parsed.append(model.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} on order item {item_id}: {e.errors()}")
    return parsed

# Sales report

class OptionSalesRead(BaseModel):
    option_id: str
    option_name: str
    sales: int
    quantity: int
    order_count: int

    class Config:
        from_attributes = True

class AddonSalesRead(BaseModel):
    addon_id: str
    addon_name: str
    sales: int
    quantity: int
    order_count: int

    class Config:
        from_attributes = True

class ProductSalesRead(BaseModel):
    product_id: str
    product_name: str
    total_sales: int
    base_sales: int
    option_sales: int
    addon_sales: int
    total_quantity: int
    order_count: int
    options: List[OptionSalesRead]
    addons: List[AddonSalesRead]

    class Config:
        from_attributes = True

# Orders

class ShippingNotificationRequest(BaseModel):
    order_id: int = Field(alias="orderId")

    class Config:
        populate_by_name = True

class OrderStatusUpdate(BaseModel):
    status: OrderStatus

class ConsultationStatusUpdate(BaseModel):
    consultation_status: ConsultationStatus

class OrderRead(BaseModel):
    id: int
    order_number: str
    status: str
    consultation_status: str
    total_amount: int
    used_points: int
    user_id: Optional[str] = None
    user_coupon_id: Optional[int] = None
    updated_at: datetime

    class Config:
        from_attributes = True

class OrderItemRead(BaseModel):
    id: int
    product_id: str
    product_name: str
    product_price: int
    quantity: int
    option_id: Optional[str] = None
    option_name: Optional[str] = None
    option_price: int = 0
    selected_addons: List[SelectedAddon] = []
    selected_option_settings: List[SelectedOptionSetting] = []

    class Config:
        from_attributes = True

    @field_validator("option_price", mode="before")
    @classmethod
    def default_option_price(cls, value):
        return 0 if value is None else value

    @field_validator("selected_addons", mode="before")
    @classmethod
    def valid_addons(cls, value):
        return parse_selections(SelectedAddon, value)

    @field_validator("selected_option_settings", mode="before")
    @classmethod
    def valid_option_settings(cls, value):
        return parse_selections(SelectedOptionSetting, value)

class OrderDetailRead(OrderRead):
    shipping_fee: int
    coupon_discount: int
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    shipping_name: Optional[str] = None
    shipping_phone: Optional[str] = None
    shipping_company: Optional[str] = None
    tracking_number: Optional[str] = None
    created_at: datetime
    items: List[OrderItemRead] = []

class MessageResponse(BaseModel):
    success: bool
    message: str

# Points

class PointAdjustRequest(BaseModel):
    points: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=255)
    type: PointType

class UserPointsRead(BaseModel):
    user_id: str
    points: int
    total_earned: int
    total_used: int

    class Config:
        from_attributes = True

class PointHistoryRead(BaseModel):
    id: int
    user_id: str
    points: int
    type: str
    reason: str
    order_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
