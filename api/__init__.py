"""
HTTP API.

aiohttp application exposing the marketplace operations as JSON routes.
"""

from api.app import create_app

__all__ = ["create_app"]
