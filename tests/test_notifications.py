import asyncio
import json

import httpx
import pytest

from shop_admin.infrastructure.notifications import (
    CancellationNotice,
    NotificationDispatcher,
    NotificationResult,
    ShippingNotice,
    VAR_ORDER_NUMBER,
    VAR_REFUND_AMOUNT,
    VAR_TRACKING_NUMBER,
    deliver_best_effort,
    normalize_provider_error,
)

PHONE = "01012345678"
CANCEL_NOTICE = CancellationNotice(order_number="ORD-1", customer_name="Kim", total_amount=27000)
SHIPPING_NOTICE = ShippingNotice(order_number="ORD-1", customer_name="Kim", shipping_company="CJ",
                                 tracking_number="6812345")


def make_dispatcher(handler, **overrides):
    config = dict(
        api_url="https://msg.test",
        api_key="key",
        api_secret="secret",
        sender_profile_id="pf-1",
        cancel_template="TPL_CANCEL",
        shipping_template="TPL_SHIP",
        transport=httpx.MockTransport(handler),
    )
    config.update(overrides)
    return NotificationDispatcher(**config)


def test_cancellation_notice_payload():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"groupInfo": {"groupId": "G4V-42"}, "failedMessageList": []})

    result = asyncio.run(make_dispatcher(handler).send_cancellation(PHONE, CANCEL_NOTICE))

    assert result == NotificationResult(success=True, message_id="G4V-42")
    assert seen["path"] == "/messages/v4/send-many/detail"
    assert seen["auth"].startswith("HMAC-SHA256 apiKey=key, date=")
    [message] = seen["body"]["messages"]
    assert message["to"] == PHONE
    assert message["type"] == "ATA"
    assert message["kakaoOptions"]["templateId"] == "TPL_CANCEL"
    assert message["kakaoOptions"]["pfId"] == "pf-1"
    assert message["kakaoOptions"]["variables"][VAR_ORDER_NUMBER] == "ORD-1"
    assert message["kakaoOptions"]["variables"][VAR_REFUND_AMOUNT] == "27,000"


def test_shipping_notice_uses_shipping_template():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"groupInfo": {"id": "G-7"}})

    result = asyncio.run(make_dispatcher(handler).send_shipping(PHONE, SHIPPING_NOTICE))

    assert result.message_id == "G-7"
    options = seen["body"]["messages"][0]["kakaoOptions"]
    assert options["templateId"] == "TPL_SHIP"
    assert options["variables"][VAR_TRACKING_NUMBER] == "6812345"


def test_provider_rejection_is_normalized():
    def handler(request):
        return httpx.Response(400, json={"errorCode": "NotEnoughBalance", "errorMessage": "Insufficient balance"})

    result = asyncio.run(make_dispatcher(handler).send_cancellation(PHONE, CANCEL_NOTICE))

    assert result.success is False
    assert result.error == "Insufficient messaging balance"


def test_failed_message_for_recipient():
    def handler(request):
        return httpx.Response(200, json={
            "groupInfo": {"groupId": "G-1"},
            "failedMessageList": [{"to": PHONE, "statusCode": "3059", "statusMessage": "Invalid recipient"}],
        })

    result = asyncio.run(make_dispatcher(handler).send_cancellation(PHONE, CANCEL_NOTICE))

    assert result.success is False
    assert result.error == "Invalid recipient phone number"


def test_transport_error_returns_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(make_dispatcher(handler).send_shipping(PHONE, SHIPPING_NOTICE))

    assert result.success is False
    assert result.error == "connection refused"


def test_unconfigured_sender_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    dispatcher = make_dispatcher(handler, api_key="")
    result = asyncio.run(dispatcher.send_cancellation(PHONE, CANCEL_NOTICE))

    assert dispatcher.configured is False
    assert result.success is False
    assert calls == []


def test_deliver_best_effort_absorbs_exceptions():
    async def exploding():
        raise RuntimeError("boom")

    result = asyncio.run(deliver_best_effort(exploding()))

    assert result.success is False
    assert result.error == "boom"


@pytest.mark.parametrize("raw,expected", [
    (None, "Notification delivery failed"),
    ("Invalid API Key", "Messaging API credentials are invalid"),
    ("Template not found", "Notification template not found"),
    ("something odd", "something odd"),
])
def test_normalize_provider_error(raw, expected):
    assert normalize_provider_error(raw) == expected
