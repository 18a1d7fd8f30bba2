from enum import Enum

class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ConsultationStatus(str, Enum):
    CHATTING_REQUIRED = "chatting_required"
    CONSULTATION_REQUIRED = "consultation_required"
    ON_HOLD = "on_hold"
    CONSULTATION_COMPLETED = "consultation_completed"
    SHIPPING_ON_HOLD = "shipping_on_hold"
    SHIPPING_COMPLETED = "shipping_completed"
    CANCELLED = "cancelled"

class PointType(str, Enum):
    EARN = "earn"
    USE = "use"
