"""
Realtime publish-on-write for new messages.

After a message-creation transaction commits, its payload is pushed through
the Channels layer to the thread's channel group:

    direct message -> "user.<receiver_id>"
    group message  -> "group.<group_id>"

Connected websocket consumers (chat.consumers.SocketConsumer) receive it as
a "socket.message" event. Publishing is best-effort: a missing or failing
channel layer is logged and never propagates to the sender's request.

Membership changes go to "user.<user_id>" as "socket.membership" events so
open sockets follow groups they join or leave without reconnecting.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from chat.models import Message
from chat.serializers import MessageSerializer

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

EVENT_TYPE = "socket.message"
MEMBERSHIP_EVENT_TYPE = "socket.membership"


def user_channel_group(user_id: int) -> str:
    return f"user.{user_id}"


def group_channel_group(group_id: int) -> str:
    return f"group.{group_id}"


def channel_group_for(message: Message) -> str:
    if message.group_id is not None:
        return group_channel_group(message.group_id)
    return user_channel_group(message.receiver_id)


def publish_message_created(message_id: int) -> bool:
    """
    Publish a stored message to its thread's channel group.

    Returns:
        True if the event was handed to the channel layer
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured, skipping broadcast")
        return False

    message = Message.objects.with_details().filter(pk=message_id).first()
    if message is None:
        logger.info(f"Message {message_id} vanished before broadcast")
        return False

    group_name = channel_group_for(message)
    try:
        async_to_sync(channel_layer.group_send)(
            group_name,
            {
                "type": EVENT_TYPE,
                "message": MessageSerializer(message).data,
            },
        )
    except Exception:
        logger.exception(f"Broadcast of message {message_id} to {group_name} failed")
        return False

    logger.debug(f"Broadcast message {message_id} to {group_name}")
    return True


def publish_membership_changed(
    group_id: int, joined_ids: Iterable[int] = (), left_ids: Iterable[int] = ()
) -> int:
    """
    Tell connected sockets of added or removed members about a group.

    Each affected user's channel group gets a "socket.membership" event, on
    which SocketConsumer joins or leaves "group.<group_id>".

    Returns:
        Number of events handed to the channel layer
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return 0

    events = [(pk, True) for pk in joined_ids] + [(pk, False) for pk in left_ids]
    published = 0
    for user_id, joined in events:
        try:
            async_to_sync(channel_layer.group_send)(
                user_channel_group(user_id),
                {"type": MEMBERSHIP_EVENT_TYPE, "group_id": group_id, "joined": joined},
            )
        except Exception:
            logger.exception(f"Membership event for user {user_id} in group {group_id} failed")
            continue
        published += 1

    logger.debug(f"Published {published} membership events for group {group_id}")
    return published
