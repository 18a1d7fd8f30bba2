"""Errors surfaced to API callers.

Each error carries the HTTP status the API layer renders it with, so services can
raise them without knowing about FastAPI.
"""

from typing import Optional


class ShopAdminError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(ShopAdminError):
    status_code = 400


class OrderNotFound(ShopAdminError):
    status_code = 404


class PaymentRequiredMismatch(ShopAdminError):
    """A charged order was sent down the no-payment cancellation path."""
    status_code = 400


class GatewayRejected(ShopAdminError):
    """The payment gateway refused or failed the cancel; upstream status is kept."""
    status_code = 502


class InsufficientPoints(ShopAdminError):
    status_code = 400


class NotificationFailed(ShopAdminError):
    status_code = 500


class AggregationFailed(ShopAdminError):
    status_code = 500
