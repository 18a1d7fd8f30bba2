import asyncio
import json

import httpx

from shop_admin.infrastructure.payment_gateway import PaymentGatewayClient


def make_client(handler):
    return PaymentGatewayClient(
        "https://pg.test/",
        "secret-123",
        transport=httpx.MockTransport(handler),
    )


def test_cancel_posts_reason_and_auth():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"cancellation": {"status": "SUCCEEDED", "totalAmount": 27000}})

    result = asyncio.run(make_client(handler).cancel("pay-1", "admin request"))

    assert result.ok is True
    assert result.status_code == 200
    assert result.data["cancellation"]["totalAmount"] == 27000
    assert seen["url"] == "https://pg.test/payments/pay-1/cancel"
    assert seen["auth"] == "PortOne secret-123"
    assert seen["body"] == {"reason": "admin request"}


def test_cancel_includes_refund_account():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    account = {"bank": "KB", "number": "123-45-678901", "holderName": "Kim"}
    asyncio.run(make_client(handler).cancel("pay-1", "refund", account))

    assert seen["body"]["refundAccount"] == account


def test_rejection_keeps_upstream_status_and_message():
    def handler(request):
        return httpx.Response(409, json={"type": "ALREADY_CANCELLED", "message": "Payment already cancelled"})

    result = asyncio.run(make_client(handler).cancel("pay-1", "admin request"))

    assert result.ok is False
    assert result.status_code == 409
    assert result.message == "Payment already cancelled"
    assert result.data["type"] == "ALREADY_CANCELLED"


def test_rejection_without_json_body():
    def handler(request):
        return httpx.Response(500, text="upstream exploded")

    result = asyncio.run(make_client(handler).cancel("pay-1", "admin request"))

    assert result.ok is False
    assert result.status_code == 500
    assert result.message == "Payment cancellation failed"


def test_timeout_maps_to_504():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = asyncio.run(make_client(handler).cancel("pay-1", "admin request"))

    assert result.ok is False
    assert result.status_code == 504


def test_connection_error_maps_to_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = asyncio.run(make_client(handler).cancel("pay-1", "admin request"))

    assert result.status_code == 502
    assert result.message == "Payment gateway unreachable"
