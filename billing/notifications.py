"""
Outbound notifications.

Schedulers hand a fully rendered ``Notification`` to a dispatcher; delivery
retries and bounce handling belong to the mail backend.
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string

from .conf import billing_setting

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    recipient: str
    subject: str
    body: str


class NotificationDispatcher:
    def dispatch(self, notification: Notification) -> None:
        raise NotImplementedError


class EmailNotificationDispatcher(NotificationDispatcher):
    def __init__(self, from_email=None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def dispatch(self, notification: Notification) -> None:
        send_mail(
            notification.subject,
            notification.body,
            self.from_email,
            [notification.recipient],
            fail_silently=False,
        )
        logger.info(f"Notification e-mailed to {notification.recipient}: {notification.subject}")


def get_default_dispatcher() -> NotificationDispatcher:
    dispatcher_class = import_string(billing_setting("NOTIFICATION_DISPATCHER"))
    return dispatcher_class()
