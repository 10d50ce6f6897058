"""Checkout, wallet and saved payment method routes."""

from aiohttp import web

from api.keys import GATEWAY
from api.routes.common import (
    body_uuid,
    caller,
    enum_value,
    path_uuid,
    payment_service_for,
    query_int,
    read_json,
    session_of,
)
from api.serializers import json_response
from app.config.settings import settings
from app.models.enums import TransactionType
from app.models.payment import Payment
from app.services.payment_methods_service import PaymentMethodsService
from app.services.wallet_service import WalletService
from app.utils.exceptions import ValidationError
from app.utils.formatters import to_paise
from app.validators import validate_amount


routes = web.RouteTableDef()


def _checkout(payment: Payment) -> dict:
    """What the browser needs to open the gateway checkout."""
    return {
        "payment": payment,
        "checkout": {
            "key_id": settings.razorpay_key_id,
            "order_id": payment.gateway_order_id,
            "amount": to_paise(payment.amount),
            "currency": payment.currency,
        },
    }


# Payments


@routes.post("/api/payments/orders")
async def create_order(request: web.Request) -> web.Response:
    body = await read_json(request)
    payment = await payment_service_for(request).create_payment_order(
        caller(request), body_uuid(body, "project_id")
    )
    return json_response(_checkout(payment), status=201)


@routes.post("/api/payments/verify")
async def verify_payment(request: web.Request) -> web.Response:
    body = await read_json(request)
    fields = ("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")
    missing = [name for name in fields if not isinstance(body.get(name), str)]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    payment = await payment_service_for(request).verify_payment(
        caller(request),
        body["razorpay_order_id"],
        body["razorpay_payment_id"],
        body["razorpay_signature"],
    )
    return json_response({"success": True, "payment": payment})


@routes.post("/api/payments/wallet")
async def pay_from_wallet(request: web.Request) -> web.Response:
    body = await read_json(request)
    payment = await payment_service_for(request).pay_from_wallet(
        caller(request), body_uuid(body, "project_id")
    )
    return json_response({"success": True, "payment": payment})


@routes.get("/api/payments")
async def list_payments(request: web.Request) -> web.Response:
    payments = await payment_service_for(request).list_payments(
        caller(request),
        limit=query_int(request, "limit", 50),
        offset=query_int(request, "offset", 0, maximum=10_000),
    )
    return json_response({"payments": payments})


@routes.get("/api/payments/{payment_id}")
async def get_payment(request: web.Request) -> web.Response:
    payment = await payment_service_for(request).get_payment(
        path_uuid(request, "payment_id"), caller(request)
    )
    return json_response(payment)


# Wallet


@routes.get("/api/wallet")
async def get_wallet(request: web.Request) -> web.Response:
    wallet = await WalletService(session_of(request)).get_or_create_wallet(
        caller(request)
    )
    return json_response(
        {"wallet": wallet, "available_balance": wallet.available_balance}
    )


@routes.get("/api/wallet/transactions")
async def list_transactions(request: web.Request) -> web.Response:
    raw_type = request.query.get("type")
    transactions = await WalletService(session_of(request)).get_transactions(
        caller(request),
        transaction_type=(
            enum_value(TransactionType, raw_type, "type") if raw_type else None
        ),
        limit=query_int(request, "limit", 50),
        offset=query_int(request, "offset", 0, maximum=10_000),
    )
    return json_response({"transactions": transactions})


@routes.post("/api/wallet/top-up")
async def top_up(request: web.Request) -> web.Response:
    body = await read_json(request)
    payment = await payment_service_for(request).top_up_wallet(
        caller(request), body.get("amount")
    )
    return json_response(_checkout(payment), status=201)


@routes.post("/api/wallet/payouts")
async def request_payout(request: web.Request) -> web.Response:
    body = await read_json(request)
    valid, amount, error = validate_amount(body.get("amount"))
    if not valid:
        raise ValidationError(error)
    payout = await WalletService(session_of(request)).request_payout(
        caller(request), amount
    )
    return json_response(payout, status=201)


@routes.get("/api/wallet/payouts")
async def list_payouts(request: web.Request) -> web.Response:
    payouts = await WalletService(session_of(request)).list_payouts(caller(request))
    return json_response({"payouts": payouts})


# Saved payment methods


def _methods(request: web.Request) -> PaymentMethodsService:
    return PaymentMethodsService(
        session_of(request), gateway=request.app.get(GATEWAY)
    )


@routes.get("/api/payment-methods")
async def list_methods(request: web.Request) -> web.Response:
    methods = await _methods(request).list_methods(caller(request))
    return json_response({"methods": methods})


@routes.post("/api/payment-methods")
async def add_method(request: web.Request) -> web.Response:
    """Add a card (``type: card``) or UPI id (``type: upi``)."""
    body = await read_json(request)
    service = _methods(request)
    method_type = body.get("type")

    if method_type == "card":
        method = await service.add_card(
            caller(request),
            card_last4=body.get("cardLast4"),
            cardholder_name=body.get("cardholderName"),
            card_brand=body.get("cardBrand"),
            card_type=body.get("cardType"),
            card_token=body.get("cardToken"),
            card_expiry=body.get("cardExpiry"),
            bank_name=body.get("bankName"),
        )
        return json_response(
            {"success": True, "method": method, "message": "Card added successfully"},
            status=201,
        )

    if method_type == "upi":
        method, message = await service.add_upi(caller(request), body.get("upiId"))
        return json_response(
            {"success": True, "method": method, "message": message}, status=201
        )

    raise ValidationError("Invalid payment method type")


@routes.post("/api/payment-methods/{method_id}/default")
async def set_default_method(request: web.Request) -> web.Response:
    method = await _methods(request).set_default(
        caller(request), path_uuid(request, "method_id")
    )
    return json_response({"success": True, "method": method})


@routes.delete("/api/payment-methods/{method_id}")
async def delete_method(request: web.Request) -> web.Response:
    await _methods(request).delete_method(
        caller(request), path_uuid(request, "method_id")
    )
    return json_response({"success": True})
