"""
Celery tasks for authentication.

Tasks:
    cleanup_expired_tokens: Periodic purge of expired refresh tokens

Scheduled through CELERY_BEAT_SCHEDULE in config/settings.py
(django-celery-beat DatabaseScheduler).
"""

import logging

from celery import shared_task
from django.utils import timezone
from rest_framework_simplejwt.token_blacklist.models import OutstandingToken

logger = logging.getLogger(__name__)


@shared_task
def cleanup_expired_tokens() -> int:
    """
    Remove refresh tokens past their expiry.

    Blacklist entries of those tokens go with them (cascade). Logging out
    blacklists refresh tokens, so without this the tables only grow.

    Returns:
        Number of outstanding tokens deleted
    """
    deleted, _ = OutstandingToken.objects.filter(expires_at__lte=timezone.now()).delete()
    logger.info(f"Cleaned up {deleted} expired token rows")
    return deleted
