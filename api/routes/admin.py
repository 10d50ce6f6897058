"""
Supervisor and admin routes.

Moderation oversight, the payment retry dead letter queue and payout
settlement.
"""

from aiohttp import web

from api.keys import GATEWAY, REDIS
from api.routes.common import (
    path_uuid,
    query_int,
    read_json,
    require_role,
    session_of,
)
from api.serializers import json_response
from app.models.enums import ProfileRole
from app.services.moderation import ModerationService
from app.services.notification import NotificationService
from app.services.payment_gateway import get_payment_gateway
from app.services.payment_retry import PaymentRetryService
from app.services.wallet_service import WalletService
from app.utils.exceptions import ValidationError
from app.validators import validate_text


routes = web.RouteTableDef()

SUPERVISOR_ROLES = (ProfileRole.SUPERVISOR.value, ProfileRole.ADMIN.value)


def _moderation(request: web.Request) -> ModerationService:
    return ModerationService(session_of(request), request.app.get(REDIS))


@routes.post("/api/moderation/check")
async def quick_check(request: web.Request) -> web.Response:
    """Detector preview while typing; nothing is logged."""
    body = await read_json(request)
    result = _moderation(request).quick_check(body.get("content"))
    return json_response(result)


@routes.get("/api/admin/moderation/profiles/{profile_id}/summary")
async def violation_summary(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    summary = await _moderation(request).get_user_violation_summary(
        path_uuid(request, "profile_id")
    )
    return json_response(summary)


@routes.get("/api/admin/moderation/profiles/{profile_id}/history")
async def violation_history(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    history = await _moderation(request).get_violation_history(
        path_uuid(request, "profile_id"), limit=query_int(request, "limit", 50)
    )
    return json_response({"violations": history})


@routes.post("/api/admin/moderation/profiles/{profile_id}/clear-rate-limit")
async def clear_rate_limit(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    released = await _moderation(request).clear_rate_limit(
        path_uuid(request, "profile_id")
    )
    return json_response({"released": released})


@routes.get("/api/admin/moderation/projects/{project_id}/stats")
async def project_violation_stats(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    stats = await _moderation(request).get_project_violation_stats(
        path_uuid(request, "project_id")
    )
    return json_response(stats)


# Payment retries


@routes.get("/api/admin/payment-retries/stats")
async def retry_stats(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    stats = await PaymentRetryService(session_of(request)).get_retry_stats()
    return json_response(stats)


@routes.get("/api/admin/payment-retries/dlq")
async def dlq_items(request: web.Request) -> web.Response:
    await require_role(request, *SUPERVISOR_ROLES)
    items = await PaymentRetryService(session_of(request)).get_dlq_items(
        limit=query_int(request, "limit", 100)
    )
    return json_response({"items": items})


@routes.post("/api/admin/payment-retries/{retry_id}/retry")
async def retry_dlq_item(request: web.Request) -> web.Response:
    await require_role(request, ProfileRole.ADMIN.value)
    gateway = request.app.get(GATEWAY) or get_payment_gateway()
    success, reference, error = await PaymentRetryService(
        session_of(request)
    ).retry_dlq_item(path_uuid(request, "retry_id"), gateway)
    return json_response(
        {"success": success, "gateway_reference": reference, "error": error},
        status=200 if success else 409,
    )


# Payouts


@routes.post("/api/admin/payouts/{payout_id}/complete")
async def complete_payout(request: web.Request) -> web.Response:
    await require_role(request, ProfileRole.ADMIN.value)
    payout = await WalletService(session_of(request)).complete_payout(
        path_uuid(request, "payout_id")
    )
    await NotificationService(session_of(request)).notify_payout_processed(
        payout.profile_id, payout.amount, payout.id
    )
    return json_response(payout)


@routes.post("/api/admin/payouts/{payout_id}/fail")
async def fail_payout(request: web.Request) -> web.Response:
    await require_role(request, ProfileRole.ADMIN.value)
    body = await read_json(request)
    valid, reason, error = validate_text(body.get("reason"), 1000, "Reason")
    if not valid:
        raise ValidationError(error)
    payout = await WalletService(session_of(request)).fail_payout(
        path_uuid(request, "payout_id"), reason
    )
    return json_response(payout)
