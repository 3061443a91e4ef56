"""
Celery tasks for notification delivery.

Tasks:
    send_message_notifications: Push fan-out for a newly created message

Design:
    - The task receives message_id, not the message, and reloads it
    - Enqueued by chat.services on transaction commit, so the message exists
    - Never retried: each recipient gets at most one attempt per message
    - A message deleted before the task runs is a no-op

Usage:
    from notifications.tasks import send_message_notifications

    send_message_notifications.delay(message_id)
"""

from __future__ import annotations

import logging

from celery import shared_task

from chat.models import Message
from notifications.services import MessageNotificationService

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True, max_retries=0)
def send_message_notifications(message_id: int) -> dict | None:
    """
    Send push notifications for one message.

    Args:
        message_id: ID of the Message

    Returns:
        Delivery summary counts, or None if the message is gone
    """
    message = (
        Message.objects.select_related("sender")
        .prefetch_related("attachments")
        .filter(pk=message_id)
        .first()
    )
    if message is None:
        logger.info(f"Message {message_id} deleted before notification, skipping")
        return None

    summary = MessageNotificationService.notify(message).data
    return {
        "message_id": summary.message_id,
        "attempted": summary.attempted,
        "sent": summary.sent,
        "failed": summary.failed,
        "skipped": summary.skipped,
    }
