"""
Route tables.

- projects.py: Project lifecycle and quotes
- payments.py: Checkout, wallet, saved payment methods
- chat.py: Rooms, messages, manual flagging
- notifications.py: In-app notifications and push subscriptions
- marketplace.py: Campus listings
- admin.py: Moderation oversight, retry DLQ, payouts
"""

from aiohttp import web

from . import admin, chat, marketplace, notifications, payments, projects


def setup_routes(app: web.Application) -> None:
    for module in (projects, payments, chat, notifications, marketplace, admin):
        app.router.add_routes(module.routes)
