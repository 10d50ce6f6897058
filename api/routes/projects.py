"""Project lifecycle and quote routes."""

from decimal import Decimal

from aiohttp import web

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
from app.models.enums import ProjectStatus, ServiceType
from app.services.project import ProjectService
from app.utils.exceptions import ValidationError
from app.validators import validate_amount, validate_deadline


routes = web.RouteTableDef()


def _service(request: web.Request) -> ProjectService:
    return ProjectService(
        session_of(request), payment_service=payment_service_for(request)
    )


@routes.get("/api/projects")
async def list_projects(request: web.Request) -> web.Response:
    status = request.query.get("status")
    projects = await _service(request).list_projects_for(
        caller(request),
        status=enum_value(ProjectStatus, status, "status") if status else None,
        limit=query_int(request, "limit", 50),
        offset=query_int(request, "offset", 0, maximum=10_000),
    )
    return json_response({"projects": projects})


@routes.post("/api/projects")
async def create_project(request: web.Request) -> web.Response:
    body = await read_json(request)
    valid, deadline, error = validate_deadline(body.get("deadline"))
    if not valid:
        raise ValidationError(error)

    project = await _service(request).create_project(
        caller(request),
        title=body.get("title"),
        deadline=deadline,
        description=body.get("description"),
        subject=body.get("subject"),
        service_type=enum_value(
            ServiceType, body.get("service_type", "new_project"), "service_type"
        ),
        word_count=body.get("word_count"),
        page_count=body.get("page_count"),
        complexity=body.get("complexity", "easy"),
    )
    return json_response(project, status=201)


@routes.get("/api/projects/{project_id}")
async def get_project(request: web.Request) -> web.Response:
    project = await _service(request).get_project(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/submit")
async def submit_project(request: web.Request) -> web.Response:
    project = await _service(request).submit_project(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/analyze")
async def start_analysis(request: web.Request) -> web.Response:
    project = await _service(request).start_analysis(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.get("/api/projects/{project_id}/quotes")
async def list_quotes(request: web.Request) -> web.Response:
    quotes = await _service(request).get_quotes(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response({"quotes": quotes})


@routes.post("/api/projects/{project_id}/quotes")
async def create_quote(request: web.Request) -> web.Response:
    body = await read_json(request)
    valid, discount, error = validate_amount(body.get("discount", "0"))
    if not valid:
        raise ValidationError(error)

    quote = await _service(request).create_quote(
        path_uuid(request, "project_id"),
        caller(request),
        complexity=body.get("complexity"),
        discount=discount or Decimal("0"),
        notes=body.get("notes"),
    )
    return json_response(quote, status=201)


@routes.post("/api/projects/{project_id}/quote/accept")
async def accept_quote(request: web.Request) -> web.Response:
    project = await _service(request).accept_quote(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/quote/reject")
async def reject_quote(request: web.Request) -> web.Response:
    project = await _service(request).reject_quote(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/assign")
async def assign_doer(request: web.Request) -> web.Response:
    body = await read_json(request)
    project = await _service(request).assign_doer(
        path_uuid(request, "project_id"),
        caller(request),
        body_uuid(body, "doer_id"),
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/start")
async def start_work(request: web.Request) -> web.Response:
    project = await _service(request).start_work(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/submit-work")
async def submit_work(request: web.Request) -> web.Response:
    project = await _service(request).submit_work(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/qc/start")
async def start_qc(request: web.Request) -> web.Response:
    project = await _service(request).start_qc(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/qc")
async def qc_review(request: web.Request) -> web.Response:
    body = await read_json(request)
    approve = body.get("approve")
    if not isinstance(approve, bool):
        raise ValidationError("'approve' must be true or false")

    project = await _service(request).qc_review(
        path_uuid(request, "project_id"),
        caller(request),
        approve=approve,
        feedback=body.get("feedback"),
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/revision")
async def request_revision(request: web.Request) -> web.Response:
    body = await read_json(request)
    project = await _service(request).request_revision(
        path_uuid(request, "project_id"), caller(request), body.get("feedback")
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/complete")
async def complete_project(request: web.Request) -> web.Response:
    project = await _service(request).complete_project(
        path_uuid(request, "project_id"), caller(request)
    )
    return json_response(project)


@routes.post("/api/projects/{project_id}/cancel")
async def cancel_project(request: web.Request) -> web.Response:
    body = await read_json(request)
    project = await _service(request).cancel_project(
        path_uuid(request, "project_id"), caller(request), body.get("reason")
    )
    return json_response(project)
