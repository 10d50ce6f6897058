"""
Notification service module.

In-app notifications and Web Push subscriptions.

Structure:
- core.py: Create, list and mark notifications
- push.py: Push subscription management
- user_notifications.py: Project, payment and payout notifications
- admin.py: Supervisor alerts (moderation escalations)

Usage:
    from app.services.notification import NotificationService

    notification_service = NotificationService(session)
    await notification_service.notify(profile_id, NotificationType.SYSTEM_ALERT, "Hi")
    await notification_service.notify_project_status(project)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.notification.admin import AdminNotificationMixin
from app.services.notification.core import NotificationService as CoreNotificationService
from app.services.notification.push import PushSubscriptionMixin
from app.services.notification.user_notifications import UserNotificationMixin


class NotificationService(
    CoreNotificationService,
    PushSubscriptionMixin,
    AdminNotificationMixin,
    UserNotificationMixin,
):
    """
    Combined notification service.

    Inherits from all notification mixins to provide complete functionality.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize notification service with all mixins.

        Args:
            session: Database session
        """
        CoreNotificationService.__init__(self, session)
        PushSubscriptionMixin.__init__(self, session)
        AdminNotificationMixin.__init__(self, session)
        UserNotificationMixin.__init__(self, session)


__all__ = ["NotificationService"]
