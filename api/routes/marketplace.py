"""Marketplace listing routes."""

from aiohttp import web

from api.routes.common import (
    caller,
    enum_value,
    path_uuid,
    query_decimal,
    query_int,
    read_json,
    session_of,
)
from api.serializers import json_response
from app.models.enums import ListingType
from app.services.marketplace_service import MarketplaceService


routes = web.RouteTableDef()


def _service(request: web.Request) -> MarketplaceService:
    return MarketplaceService(session_of(request))


@routes.get("/api/marketplace/listings")
async def search_listings(request: web.Request) -> web.Response:
    raw_type = request.query.get("type")
    listings = await _service(request).search_listings(
        listing_type=enum_value(ListingType, raw_type, "type") if raw_type else None,
        query=request.query.get("q"),
        min_price=query_decimal(request, "min_price"),
        max_price=query_decimal(request, "max_price"),
        city=request.query.get("city"),
        limit=query_int(request, "limit", 20),
        offset=query_int(request, "offset", 0, maximum=10_000),
    )
    return json_response({"listings": listings})


@routes.post("/api/marketplace/listings")
async def create_listing(request: web.Request) -> web.Response:
    body = await read_json(request)
    listing = await _service(request).create_listing(
        caller(request),
        enum_value(ListingType, body.get("listing_type"), "listing_type"),
        title=body.get("title"),
        description=body.get("description"),
        price=body.get("price"),
        city=body.get("city"),
        image_urls=body.get("image_urls"),
    )
    return json_response(listing, status=201)


@routes.get("/api/marketplace/listings/mine")
async def my_listings(request: web.Request) -> web.Response:
    listings = await _service(request).list_own(caller(request))
    return json_response({"listings": listings})


@routes.get("/api/marketplace/listings/pending")
async def pending_listings(request: web.Request) -> web.Response:
    listings = await _service(request).list_pending(caller(request))
    return json_response({"listings": listings})


@routes.get("/api/marketplace/listings/{listing_id}")
async def get_listing(request: web.Request) -> web.Response:
    listing = await _service(request).get_listing(
        path_uuid(request, "listing_id"), caller(request)
    )
    return json_response(listing)


@routes.post("/api/marketplace/listings/{listing_id}/approve")
async def approve_listing(request: web.Request) -> web.Response:
    listing = await _service(request).approve_listing(
        path_uuid(request, "listing_id"), caller(request)
    )
    return json_response(listing)


@routes.post("/api/marketplace/listings/{listing_id}/reject")
async def reject_listing(request: web.Request) -> web.Response:
    body = await read_json(request)
    listing = await _service(request).reject_listing(
        path_uuid(request, "listing_id"), caller(request), body.get("reason")
    )
    return json_response(listing)


@routes.post("/api/marketplace/listings/{listing_id}/sold")
async def mark_sold(request: web.Request) -> web.Response:
    listing = await _service(request).mark_sold(
        path_uuid(request, "listing_id"), caller(request)
    )
    return json_response(listing)


@routes.delete("/api/marketplace/listings/{listing_id}")
async def remove_listing(request: web.Request) -> web.Response:
    listing = await _service(request).remove_listing(
        path_uuid(request, "listing_id"), caller(request)
    )
    return json_response(listing)
