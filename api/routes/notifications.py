"""In-app notification and Web Push subscription routes."""

from aiohttp import web

from api.routes.common import caller, path_uuid, query_int, read_json, session_of
from api.serializers import json_response
from app.config.constants import NOTIFICATION_PAGE_SIZE
from app.config.settings import settings
from app.services.notification import NotificationService
from app.utils.exceptions import ValidationError


routes = web.RouteTableDef()


def _service(request: web.Request) -> NotificationService:
    return NotificationService(session_of(request))


@routes.get("/api/notifications")
async def list_notifications(request: web.Request) -> web.Response:
    notifications = await _service(request).list_for(
        caller(request),
        unread_only=request.query.get("unread") in ("1", "true"),
        limit=query_int(request, "limit", NOTIFICATION_PAGE_SIZE),
        offset=query_int(request, "offset", 0, maximum=10_000),
    )
    return json_response({"notifications": notifications})


@routes.get("/api/notifications/unread-count")
async def unread_count(request: web.Request) -> web.Response:
    count = await _service(request).unread_count(caller(request))
    return json_response({"unread_count": count})


@routes.post("/api/notifications/{notification_id}/read")
async def mark_read(request: web.Request) -> web.Response:
    notification = await _service(request).mark_read(
        path_uuid(request, "notification_id"), caller(request)
    )
    return json_response(notification)


@routes.post("/api/notifications/read-all")
async def mark_all_read(request: web.Request) -> web.Response:
    updated = await _service(request).mark_all_read(caller(request))
    return json_response({"updated": updated})


# Push subscriptions


@routes.get("/api/push/vapid-key")
async def vapid_key(request: web.Request) -> web.Response:
    return json_response({"public_key": settings.vapid_public_key})


@routes.get("/api/push/subscriptions")
async def list_subscriptions(request: web.Request) -> web.Response:
    subscriptions = await _service(request).list_for_profile(caller(request))
    return json_response({"subscriptions": subscriptions})


@routes.post("/api/push/subscriptions")
async def subscribe(request: web.Request) -> web.Response:
    """Body is the browser ``PushSubscription.toJSON()`` object."""
    body = await read_json(request)
    keys = body.get("keys")
    if not isinstance(keys, dict):
        raise ValidationError("Push subscription keys are required")

    subscription = await _service(request).subscribe(
        caller(request),
        endpoint=body.get("endpoint"),
        p256dh=keys.get("p256dh"),
        auth=keys.get("auth"),
        user_agent=request.headers.get("User-Agent"),
    )
    return json_response(subscription, status=201)


@routes.delete("/api/push/subscriptions")
async def unsubscribe(request: web.Request) -> web.Response:
    body = await read_json(request)
    endpoint = body.get("endpoint")
    if not isinstance(endpoint, str) or not endpoint:
        raise ValidationError("Endpoint is required")
    removed = await _service(request).unsubscribe(caller(request), endpoint)
    return json_response({"removed": removed})
