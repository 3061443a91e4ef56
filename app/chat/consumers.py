"""
WebSocket consumer for realtime message delivery.

Consumers:
    SocketConsumer: One socket per signed-in client, receiving every new
        message of the user's direct threads and groups

Authentication:
    Users are authenticated via JWT token passed as query parameter.
    chat.middleware.JWTAuthMiddleware attaches the user to self.scope["user"].

Channel Groups:
    "user.<user_id>" for direct messages addressed to the user, and
    "group.<group_id>" for each group the user belongs to. Groups joined or
    left later arrive as "socket.membership" events on the user channel group.

Message Types (to client):
    - message: {"type": "message", "message": <message payload>}
    - membership: {"type": "membership", "group_id": <id>, "joined": <bool>}

The socket is receive-only; messages are sent through the HTTP API.
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from chat.broadcast import group_channel_group, user_channel_group
from chat.models import GroupMembership

logger = logging.getLogger(__name__)


class SocketConsumer(AsyncJsonWebsocketConsumer):
    """
    Per-user realtime feed.

    Attributes:
        channel_groups: Channel layer groups joined on connect
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.channel_groups: list[str] = []

    async def connect(self):
        """
        Handle WebSocket connection.

        Rejects anonymous users with close code 4001; otherwise joins the
        user's channel group plus one per group membership.
        """
        user = self.scope.get("user")

        if not user or isinstance(user, AnonymousUser):
            logger.warning("Rejected unauthenticated socket connection")
            await self.close(code=4001)
            return

        group_ids = await self._get_group_ids(user.id)
        self.channel_groups = [user_channel_group(user.id)] + [
            group_channel_group(group_id) for group_id in group_ids
        ]

        for name in self.channel_groups:
            await self.channel_layer.group_add(name, self.channel_name)

        await self.accept()
        logger.info(f"User {user.id} connected ({len(group_ids)} groups)")

    async def disconnect(self, close_code):
        for name in self.channel_groups:
            await self.channel_layer.group_discard(name, self.channel_name)

        user = self.scope.get("user")
        if user and not isinstance(user, AnonymousUser):
            logger.info(f"User {user.id} disconnected (code {close_code})")

    async def receive_json(self, content, **kwargs):
        await self.send_json({"type": "error", "error": "This socket is receive-only"})

    async def socket_message(self, event):
        """Handler for "socket.message" events published by chat.broadcast."""
        await self.send_json({"type": "message", "message": event["message"]})

    async def socket_membership(self, event):
        """Handler for "socket.membership": follow a group joined or left after connect."""
        name = group_channel_group(event["group_id"])
        if event["joined"]:
            if name not in self.channel_groups:
                await self.channel_layer.group_add(name, self.channel_name)
                self.channel_groups.append(name)
        elif name in self.channel_groups:
            await self.channel_layer.group_discard(name, self.channel_name)
            self.channel_groups.remove(name)

        await self.send_json(
            {"type": "membership", "group_id": event["group_id"], "joined": event["joined"]}
        )

    @database_sync_to_async
    def _get_group_ids(self, user_id: int) -> list[int]:
        return list(
            GroupMembership.objects.filter(user_id=user_id).values_list("group_id", flat=True)
        )
