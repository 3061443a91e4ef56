"""
QuerySets for chat models.

These are the query shapes the chat services rely on:
- latest message between two users, latest message of a group
- every message of a thread, newest first with a stable tie-break
- messages strictly older than a given message in its thread
- conversation lookup by unordered user pair

Ordering:
    "Newest first" always means (created_at DESC, id DESC) so that two
    messages stored within the same clock tick still have a defined order.

Usage:
    Message.objects.in_thread(alice.id, DirectTarget(bob.id)).latest_first()
    Message.objects.thread_of(message).before(message).latest_first()[:10]
    Conversation.objects.for_pair(alice.id, bob.id).first()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.db.models import Q

from chat.threads import DirectTarget, GroupTarget, target_of

if TYPE_CHECKING:
    from chat.models import Message
    from chat.threads import ThreadTarget

LATEST_FIRST = ("-created_at", "-id")


def canonical_pair(user_a_id: int, user_b_id: int) -> tuple[int, int]:
    """Return the pair with the lower id first."""
    if user_a_id < user_b_id:
        return user_a_id, user_b_id
    return user_b_id, user_a_id


class MessageQuerySet(models.QuerySet):
    """Query methods for Message."""

    def between(self, user_a_id: int, user_b_id: int) -> MessageQuerySet:
        """Direct messages exchanged between two users, either direction."""
        return self.filter(
            Q(sender_id=user_a_id, receiver_id=user_b_id)
            | Q(sender_id=user_b_id, receiver_id=user_a_id)
        )

    def in_group(self, group_id: int) -> MessageQuerySet:
        return self.filter(group_id=group_id)

    def in_thread(self, user_id: int, target: ThreadTarget) -> MessageQuerySet:
        """Messages of the thread that ``target`` names from ``user_id``'s side."""
        if isinstance(target, GroupTarget):
            return self.in_group(target.group_id)
        if isinstance(target, DirectTarget):
            return self.between(user_id, target.user_id)
        raise TypeError(f"Unknown thread target: {target!r}")

    def thread_of(self, message: Message) -> MessageQuerySet:
        """Messages sharing a thread with ``message`` (including itself)."""
        return self.in_thread(message.sender_id, target_of(message))

    def before(self, message: Message) -> MessageQuerySet:
        """Messages strictly older than ``message`` in (created_at, id) order."""
        return self.filter(
            Q(created_at__lt=message.created_at)
            | Q(created_at=message.created_at, id__lt=message.id)
        )

    def latest_first(self) -> MessageQuerySet:
        return self.order_by(*LATEST_FIRST)

    def involving(self, user_id: int) -> MessageQuerySet:
        """Direct messages sent or received by the user."""
        return self.filter(
            Q(sender_id=user_id, receiver__isnull=False) | Q(receiver_id=user_id)
        )

    def with_details(self) -> MessageQuerySet:
        """Prefetch everything the message payload renders."""
        return self.select_related(
            "sender",
            "reply_to",
            "reply_to__sender",
        ).prefetch_related("attachments", "reply_to__attachments")


class ConversationQuerySet(models.QuerySet):
    """Query methods for Conversation."""

    def for_pair(self, user_a_id: int, user_b_id: int) -> ConversationQuerySet:
        """The (at most one) conversation of an unordered user pair."""
        lower, higher = canonical_pair(user_a_id, user_b_id)
        return self.filter(user_lower_id=lower, user_higher_id=higher)


class GroupQuerySet(models.QuerySet):
    """Query methods for Group."""

    def for_member(self, user_id: int) -> GroupQuerySet:
        """
        Groups the user belongs to.

        Filters through a subquery so that later annotations over
        memberships (member counts) still see every member.
        """
        from chat.models import GroupMembership

        return self.filter(
            pk__in=GroupMembership.objects.filter(user_id=user_id).values("group_id")
        )
