"""
Thread addressing for chat messages.

A message goes to exactly one thread: a direct thread with another user,
or a group thread. ThreadTarget is that address, as seen from the user
acting on the thread. It is built once at the request boundary (serializer
or URL) and passed to services instead of a pair of nullable ids.

Usage:
    from chat.threads import DirectTarget, GroupTarget

    target = DirectTarget(user_id=bob.id)
    MessageService.send_message(sender=alice, target=target, body="hi")

    Message.objects.in_thread(alice.id, GroupTarget(group_id=group.id))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Union

if TYPE_CHECKING:
    from chat.models import Message


@dataclass(frozen=True)
class DirectTarget:
    """Direct thread with another user."""

    user_id: int

    kind: ClassVar[str] = "user"


@dataclass(frozen=True)
class GroupTarget:
    """Group thread."""

    group_id: int

    kind: ClassVar[str] = "group"


ThreadTarget = Union[DirectTarget, GroupTarget]


def target_of(message: Message) -> ThreadTarget:
    """Return the thread a stored message belongs to, as seen by its sender."""
    if message.group_id is not None:
        return GroupTarget(group_id=message.group_id)
    return DirectTarget(user_id=message.receiver_id)


def build_target(receiver_id: int | None, group_id: int | None) -> ThreadTarget:
    """
    Build a target from the two optional wire fields.

    Raises:
        ValueError: If both or neither are given
    """
    if (receiver_id is None) == (group_id is None):
        raise ValueError("Exactly one of receiver_id or group_id is required.")
    if group_id is not None:
        return GroupTarget(group_id=group_id)
    return DirectTarget(user_id=receiver_id)
