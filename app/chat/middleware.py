"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections. The access token is
read from the query string: ws://host/ws/socket/?token=<jwt_token>

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


def token_from_scope(scope) -> str | None:
    query = parse_qs(scope.get("query_string", b"").decode())
    values = query.get("token")
    return values[0] if values else None


@database_sync_to_async
def get_user_for_token(raw_token: str):
    """Return the active user the access token belongs to, else AnonymousUser."""
    try:
        token = AccessToken(raw_token)
    except TokenError as e:
        logger.info(f"Rejected websocket token: {e}")
        return AnonymousUser()

    user_id = token.get(api_settings.USER_ID_CLAIM)
    user = get_user_model().objects.filter(pk=user_id, is_active=True).first()
    return user or AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """Attach the user named by the ?token= access token to scope["user"]."""

    async def __call__(self, scope, receive, send):
        raw_token = token_from_scope(scope)
        if raw_token:
            scope["user"] = await get_user_for_token(raw_token)
        else:
            scope["user"] = AnonymousUser()
        return await super().__call__(scope, receive, send)
