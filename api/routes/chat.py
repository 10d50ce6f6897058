"""Chat room and message routes."""

from aiohttp import web

from api.keys import REDIS
from api.routes.common import (
    caller,
    enum_value,
    path_uuid,
    query_datetime,
    query_int,
    read_json,
    session_of,
)
from api.serializers import json_response
from app.config.constants import CHAT_PAGE_SIZE
from app.models.enums import MessageType
from app.services.chat_service import ChatService
from app.validators import validate_uuid


routes = web.RouteTableDef()


def _service(request: web.Request) -> ChatService:
    return ChatService(session_of(request), request.app.get(REDIS))


@routes.get("/api/chat/rooms")
async def list_rooms(request: web.Request) -> web.Response:
    rooms = await _service(request).list_rooms(caller(request))
    return json_response({"rooms": rooms})


@routes.get("/api/chat/rooms/{room_id}/messages")
async def list_messages(request: web.Request) -> web.Response:
    messages = await _service(request).list_messages(
        path_uuid(request, "room_id"),
        caller(request),
        limit=query_int(request, "limit", CHAT_PAGE_SIZE, maximum=CHAT_PAGE_SIZE),
        before=query_datetime(request, "before"),
    )
    return json_response({"messages": messages})


@routes.post("/api/chat/rooms/{room_id}/messages")
async def send_message(request: web.Request) -> web.Response:
    """
    Send a message.

    Blocked content answers 422 with the moderation message, violation
    types and any escalating warning.
    """
    body = await read_json(request)
    message = await _service(request).send_message(
        path_uuid(request, "room_id"),
        caller(request),
        body.get("content"),
        message_type=enum_value(
            MessageType, body.get("message_type", "text"), "message_type"
        ),
        file_url=body.get("file_url"),
    )
    return json_response(message, status=201)


@routes.post("/api/chat/rooms/{room_id}/read")
async def mark_room_read(request: web.Request) -> web.Response:
    membership = await _service(request).mark_room_read(
        path_uuid(request, "room_id"), caller(request)
    )
    return json_response({"last_read_at": membership.last_read_at})


@routes.get("/api/chat/flagged")
async def list_flagged(request: web.Request) -> web.Response:
    room_id = None
    if request.query.get("room_id"):
        _, room_id, _ = validate_uuid(request.query["room_id"])
    messages = await _service(request).list_flagged(caller(request), room_id)
    return json_response({"messages": messages})


@routes.post("/api/chat/messages/{message_id}/flag")
async def flag_message(request: web.Request) -> web.Response:
    body = await read_json(request)
    message = await _service(request).flag_message(
        path_uuid(request, "message_id"), caller(request), body.get("reason")
    )
    return json_response(message)


@routes.delete("/api/chat/messages/{message_id}/flag")
async def unflag_message(request: web.Request) -> web.Response:
    message = await _service(request).unflag_message(
        path_uuid(request, "message_id"), caller(request)
    )
    return json_response(message)
