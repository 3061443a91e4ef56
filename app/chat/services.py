"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all operations on threads, messages and groups.

Services:
    PointerService: Keeps Conversation/Group last_message pointers correct
    MessageService: Message operations (send, delete, thread reads, read markers)
    GroupService: Group lifecycle (create, update, delete, list)
    ConversationListService: Sidebar list of direct and group threads

Design Principles:
    - Services are stateless (use class methods)
    - The acting user is always an explicit argument
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise and roll back the enclosing transaction
    - A thread's pointer row is locked (SELECT ... FOR UPDATE) for the whole
      create/delete so concurrent writers on the same thread serialize
    - Realtime broadcast and push fan-out run after commit and never fail
      the request

Usage:
    from chat.services import MessageService
    from chat.threads import DirectTarget

    result = MessageService.send_message(
        sender=alice,
        target=DirectTarget(user_id=bob.id),
        body="hello",
    )
    if result.success:
        message = result.data

    result = MessageService.delete_message(message_id=message.id, user=alice)
    new_last = result.data  # Message or None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import Count, Exists, OuterRef, Q, Subquery
from django.utils import timezone

from authentication.models import User
from chat.constants import CONVERSATION_CONFIG
from chat.managers import canonical_pair
from chat.models import (
    Conversation,
    Group,
    GroupMembership,
    Message,
    MessageAttachment,
)
from chat.previews import format_preview
from chat.threads import DirectTarget, GroupTarget
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.core.files.uploadedfile import UploadedFile
    from django.db.models import QuerySet

    from chat.threads import ThreadTarget

logger = logging.getLogger(__name__)


def _delete_files_on_commit(files: list[tuple]) -> None:
    """Remove stored files once the rows referencing them are gone for good."""

    def _delete():
        for storage, name in files:
            try:
                storage.delete(name)
            except OSError:
                logger.warning(f"Could not delete stored file {name}", exc_info=True)

    if files:
        transaction.on_commit(_delete)


def _attachment_files(attachments: QuerySet) -> list[tuple]:
    return [(a.file.storage, a.file.name) for a in attachments if a.file]


def _after_message_created(message_id: int) -> None:
    """Post-commit side effects of a new message: realtime broadcast and push."""
    from chat.broadcast import publish_message_created
    from notifications.tasks import send_message_notifications

    publish_message_created(message_id)

    try:
        send_message_notifications.delay(message_id)
    except Exception:
        logger.exception(f"Could not enqueue notifications for message {message_id}")


def _membership_changed_on_commit(group_id: int, joined: set[int], left: set[int]) -> None:
    """Let open sockets follow the new member set once it is committed."""
    from chat.broadcast import publish_membership_changed

    if joined or left:
        transaction.on_commit(
            lambda: publish_membership_changed(group_id, sorted(joined), sorted(left))
        )


# =============================================================================
# Pointer Maintenance
# =============================================================================


class PointerService(BaseService):
    """
    Maintains the last_message pointer of each thread.

    Every method must run inside a transaction: the thread row returned by
    lock_for_create/lock_for_delete stays locked until commit.

    Methods:
        lock_for_create: Lock (and for direct threads, upsert) the pointer row
        record_created: Point the thread at a just-created message
        lock_for_delete: Lock the pointer row of an existing message's thread
        reassign_before_delete: Move the pointer off a message about to go
    """

    @classmethod
    def lock_for_create(cls, sender_id: int, target: ThreadTarget) -> Conversation | Group:
        """
        Lock the pointer row of the thread a new message goes to.

        Direct threads create their Conversation row on first use; the unique
        pair constraint makes concurrent first messages converge on one row.
        """
        if isinstance(target, GroupTarget):
            return Group.objects.select_for_update().get(pk=target.group_id)

        lower, higher = canonical_pair(sender_id, target.user_id)
        conversation, created = Conversation.objects.get_or_create(
            user_lower_id=lower,
            user_higher_id=higher,
        )
        if created:
            cls.get_logger().debug(f"Created conversation {conversation.id} ({lower}, {higher})")
        return Conversation.objects.select_for_update().get(pk=conversation.pk)

    @classmethod
    def record_created(cls, thread: Conversation | Group, message: Message) -> None:
        """The newest message of a thread is the one just created."""
        thread.last_message = message
        thread.save(update_fields=["last_message", "updated_at"])

    @classmethod
    def lock_for_delete(cls, message: Message) -> Conversation | Group | None:
        """
        Lock the pointer row of the message's thread.

        Returns None for a direct thread that has no Conversation row.
        """
        if message.group_id is not None:
            return Group.objects.select_for_update().filter(pk=message.group_id).first()
        return (
            Conversation.objects.select_for_update()
            .for_pair(message.sender_id, message.receiver_id)
            .first()
        )

    @classmethod
    def reassign_before_delete(
        cls,
        thread: Conversation | Group | None,
        message: Message,
    ) -> Message | None:
        """
        Keep the pointer valid before ``message`` is deleted.

        If the thread points at the message, the pointer moves to the newest
        other message of the thread (or None). Recency is read from the
        database while the thread row is locked.

        Returns:
            The thread's last message once ``message`` is gone
        """
        if thread is None:
            return Message.objects.thread_of(message).exclude(pk=message.pk).latest_first().first()

        if thread.last_message_id != message.id:
            return thread.last_message

        replacement = (
            Message.objects.thread_of(message).exclude(pk=message.pk).latest_first().first()
        )
        thread.last_message = replacement
        thread.save(update_fields=["last_message", "updated_at"])

        cls.get_logger().info(
            f"Pointer of {thread} moved from message {message.id} to "
            f"{replacement.id if replacement else None}"
        )
        return replacement


# =============================================================================
# Messages
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Create a message (with attachments) in a thread
        delete_message: Delete own message, keeping the thread pointer valid
        get_thread: Messages of a thread, newest first
        get_older: Messages of a thread older than a given message
        mark_as_read: Mark a thread read for a user
        get_unread_count: Unread messages addressed to a user
    """

    @classmethod
    def _check_target(cls, user: User, target: ThreadTarget) -> ServiceResult[None]:
        """Validate that the user may read from / write to the target thread."""
        if isinstance(target, DirectTarget):
            if target.user_id == user.id:
                return ServiceResult.failure(
                    "You cannot message yourself",
                    error_code="VALIDATION_ERROR",
                    errors={"receiver_id": ["Cannot be your own id."]},
                )
            if not User.objects.filter(pk=target.user_id, is_active=True).exists():
                return ServiceResult.failure("User not found", error_code="NOT_FOUND")
            return ServiceResult.success(None)

        if not Group.objects.filter(pk=target.group_id).exists():
            return ServiceResult.failure("Group not found", error_code="NOT_FOUND")
        if not GroupMembership.objects.filter(group_id=target.group_id, user_id=user.id).exists():
            return ServiceResult.failure(
                "You are not a member of this group",
                error_code="NOT_MEMBER",
            )
        return ServiceResult.success(None)

    @classmethod
    def send_message(
        cls,
        sender: User,
        target: ThreadTarget,
        body: str | None = None,
        reply_to_id: int | None = None,
        files: Iterable[UploadedFile] = (),
    ) -> ServiceResult[Message]:
        """
        Send a message to a direct or group thread.

        The message, its attachments and the thread pointer are written in
        one transaction. Realtime broadcast and push notifications are
        scheduled after commit.

        Args:
            sender: Authenticated user sending the message
            target: Thread the message goes to
            body: Optional text (voice messages carry the voice sentinel)
            reply_to_id: Optional id of a message of the same thread
            files: Uploaded attachments

        Returns:
            ServiceResult with the new Message

        Error codes:
            VALIDATION_ERROR: Empty message, self-message, bad reply_to_id
            NOT_FOUND: Receiver or group does not exist
            NOT_MEMBER: Sender is not in the group
        """
        files = list(files)
        body = body if body and body.strip() else None

        if body is None and not files:
            return ServiceResult.failure(
                "A message needs text or at least one attachment",
                error_code="VALIDATION_ERROR",
                errors={"message": ["This field is required when no attachments are sent."]},
            )

        check = cls._check_target(sender, target)
        if not check.success:
            return check

        reply_to = None
        if reply_to_id is not None:
            reply_to = (
                Message.objects.in_thread(sender.id, target).filter(pk=reply_to_id).first()
            )
            if reply_to is None:
                return ServiceResult.failure(
                    "The message you are replying to does not exist in this conversation",
                    error_code="VALIDATION_ERROR",
                    errors={"reply_to_id": ["Invalid message id."]},
                )

        with cls.atomic():
            thread = PointerService.lock_for_create(sender.id, target)

            message = Message.objects.create(
                sender=sender,
                receiver_id=target.user_id if isinstance(target, DirectTarget) else None,
                group_id=target.group_id if isinstance(target, GroupTarget) else None,
                body=body,
                reply_to=reply_to,
            )

            for upload in files:
                mime = getattr(upload, "content_type", None) or "application/octet-stream"
                attachment = MessageAttachment(
                    message=message,
                    name=upload.name,
                    mime=mime,
                    size=upload.size,
                )
                attachment.file.save(upload.name, upload, save=False)
                attachment.save()

            PointerService.record_created(thread, message)

            transaction.on_commit(lambda: _after_message_created(message.id))

        cls.get_logger().info(
            f"User {sender.id} sent message {message.id} to {target} "
            f"with {len(files)} attachment(s)"
        )
        return ServiceResult.success(message)

    @classmethod
    def delete_message(cls, message_id: int, user: User) -> ServiceResult[Message | None]:
        """
        Delete a message sent by ``user``.

        Ordered steps, in one transaction with the thread row locked:
            1. Move the thread pointer off the message if it points there
            2. Detach replies (their reply_to becomes null)
            3. Delete attachment rows (files are removed after commit)
            4. Delete the message

        Returns:
            ServiceResult with the thread's last message after deletion
            (None when the thread is now empty)

        Error codes:
            NOT_FOUND: Message does not exist
            PERMISSION_DENIED: Only the sender may delete a message
        """
        message = Message.objects.filter(pk=message_id).first()
        if message is None:
            return ServiceResult.failure("Message not found", error_code="NOT_FOUND")

        if message.sender_id != user.id:
            cls.get_logger().warning(
                f"User {user.id} tried to delete message {message.id} "
                f"sent by {message.sender_id}"
            )
            return ServiceResult.failure(
                "You can only delete your own messages",
                error_code="PERMISSION_DENIED",
            )

        with cls.atomic():
            thread = PointerService.lock_for_delete(message)

            # A concurrent delete may have won the lock first
            if not Message.objects.filter(pk=message.pk).exists():
                return ServiceResult.failure("Message not found", error_code="NOT_FOUND")

            new_last = PointerService.reassign_before_delete(thread, message)

            Message.objects.filter(reply_to=message).update(reply_to=None)

            attachments = MessageAttachment.objects.filter(message=message)
            _delete_files_on_commit(_attachment_files(attachments))
            attachments.delete()

            message.delete()

        cls.get_logger().info(f"User {user.id} deleted message {message_id}")
        return ServiceResult.success(new_last)

    @classmethod
    def get_thread(cls, user: User, target: ThreadTarget) -> ServiceResult[QuerySet]:
        """
        Messages of a thread, newest first.

        Error codes:
            NOT_FOUND: Other user or group does not exist
            NOT_MEMBER: User is not in the group
        """
        check = cls._check_target(user, target)
        if not check.success:
            return check

        queryset = Message.objects.in_thread(user.id, target).with_details().latest_first()
        return ServiceResult.success(queryset)

    @classmethod
    def get_older(cls, user: User, message_id: int) -> ServiceResult[QuerySet]:
        """
        Messages of the same thread strictly older than the given message.

        Error codes:
            NOT_FOUND: Message does not exist
            NOT_PARTY: User is neither party to the direct thread nor a group member
        """
        message = Message.objects.filter(pk=message_id).first()
        if message is None:
            return ServiceResult.failure("Message not found", error_code="NOT_FOUND")

        if message.group_id is not None:
            allowed = GroupMembership.objects.filter(
                group_id=message.group_id, user_id=user.id
            ).exists()
        else:
            allowed = user.id in (message.sender_id, message.receiver_id)

        if not allowed:
            return ServiceResult.failure(
                "You are not part of this conversation",
                error_code="NOT_PARTY",
            )

        queryset = (
            Message.objects.thread_of(message)
            .before(message)
            .with_details()
            .latest_first()
        )
        return ServiceResult.success(queryset)

    @classmethod
    def mark_as_read(cls, user: User, target: ThreadTarget) -> ServiceResult[int]:
        """
        Mark a thread read for ``user``.

        Returns:
            ServiceResult with the number of direct messages marked read
            (always 0 for groups, which track a per-member timestamp)
        """
        check = cls._check_target(user, target)
        if not check.success:
            return check

        now = timezone.now()
        if isinstance(target, DirectTarget):
            updated = Message.objects.filter(
                sender_id=target.user_id,
                receiver_id=user.id,
                read_at__isnull=True,
            ).update(read_at=now)
        else:
            GroupMembership.objects.filter(group_id=target.group_id, user_id=user.id).update(
                last_read_at=now
            )
            updated = 0

        cls.get_logger().debug(f"User {user.id} marked {target} as read")
        return ServiceResult.success(updated)

    @classmethod
    def get_unread_count(cls, user: User, exclude_message_id: int | None = None) -> int:
        """
        Count messages addressed to ``user`` that the user has not read.

        Direct: messages to the user with no read_at.
        Group: messages from other members created after the user's
        last_read_at for that group (all of them if never read).
        """
        direct = Message.objects.filter(receiver_id=user.id, read_at__isnull=True)

        unread_membership = GroupMembership.objects.filter(
            group_id=OuterRef("group_id"),
            user_id=user.id,
        ).filter(Q(last_read_at__isnull=True) | Q(last_read_at__lt=OuterRef("created_at")))
        group = (
            Message.objects.filter(group__isnull=False)
            .filter(Exists(unread_membership))
            .exclude(sender_id=user.id)
        )

        if exclude_message_id is not None:
            direct = direct.exclude(pk=exclude_message_id)
            group = group.exclude(pk=exclude_message_id)

        return direct.count() + group.count()


# =============================================================================
# Groups
# =============================================================================


class GroupService(BaseService):
    """
    Service for group lifecycle operations.

    Methods:
        list_for_user: Groups the user belongs to
        create_group: Create a group with its initial members
        update_group: Rename / describe / replace members (owner or admin)
        delete_group: Delete a group and all of its messages (owner or admin)
    """

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet:
        return (
            Group.objects.for_member(user.id)
            .select_related("owner", "last_message__sender")
            .prefetch_related("memberships", "last_message__attachments")
            .annotate(member_count=Count("memberships"))
            .order_by("name", "id")
        )

    @classmethod
    def _existing_user_ids(cls, user_ids: Iterable[int]) -> tuple[set[int], set[int]]:
        wanted = set(user_ids)
        found = set(User.objects.filter(pk__in=wanted, is_active=True).values_list("pk", flat=True))
        return found, wanted - found

    @classmethod
    def create_group(
        cls,
        owner: User,
        name: str,
        member_ids: Iterable[int],
        description: str = "",
    ) -> ServiceResult[Group]:
        """
        Create a group. The owner is always a member.

        Error codes:
            VALIDATION_ERROR: Unknown member ids
        """
        found, missing = cls._existing_user_ids(member_ids)
        if missing:
            return ServiceResult.failure(
                "Some users do not exist",
                error_code="VALIDATION_ERROR",
                errors={"user_ids": [f"Unknown user id: {pk}" for pk in sorted(missing)]},
            )

        with cls.atomic():
            group = Group.objects.create(
                name=name.strip(),
                description=description or "",
                owner=owner,
            )
            GroupMembership.objects.bulk_create(
                [GroupMembership(group=group, user_id=pk) for pk in sorted(found | {owner.id})]
            )
            _membership_changed_on_commit(group.id, joined=found | {owner.id}, left=set())

        cls.get_logger().info(
            f"User {owner.id} created group {group.id} with {len(found | {owner.id})} members"
        )
        return ServiceResult.success(group)

    @classmethod
    def update_group(
        cls,
        group: Group,
        user: User,
        name: str | None = None,
        description: str | None = None,
        member_ids: Iterable[int] | None = None,
    ) -> ServiceResult[Group]:
        """
        Update group details and optionally replace its member set.

        Error codes:
            PERMISSION_DENIED: User is neither the owner nor an admin
            VALIDATION_ERROR: Unknown member ids
        """
        if not group.can_manage(user):
            return ServiceResult.failure(
                "Only the group owner or an admin can update this group",
                error_code="PERMISSION_DENIED",
            )

        found: set[int] = set()
        if member_ids is not None:
            found, missing = cls._existing_user_ids(member_ids)
            if missing:
                return ServiceResult.failure(
                    "Some users do not exist",
                    error_code="VALIDATION_ERROR",
                    errors={"user_ids": [f"Unknown user id: {pk}" for pk in sorted(missing)]},
                )

        with cls.atomic():
            update_fields = ["updated_at"]
            if name is not None:
                group.name = name.strip()
                update_fields.append("name")
            if description is not None:
                group.description = description
                update_fields.append("description")
            group.save(update_fields=update_fields)

            if member_ids is not None:
                keep = found | {group.owner_id}
                current = set(
                    GroupMembership.objects.filter(group=group).values_list("user_id", flat=True)
                )
                GroupMembership.objects.filter(group=group).exclude(user_id__in=keep).delete()
                GroupMembership.objects.bulk_create(
                    [GroupMembership(group=group, user_id=pk) for pk in sorted(keep - current)]
                )
                _membership_changed_on_commit(
                    group.id, joined=keep - current, left=current - keep
                )

        cls.get_logger().info(f"User {user.id} updated group {group.id}")
        return ServiceResult.success(group)

    @classmethod
    def delete_group(cls, group: Group, user: User) -> ServiceResult[None]:
        """
        Delete a group with all its messages.

        Ordered steps, in one transaction with the group row locked:
            1. Clear the group's pointer
            2. Detach replies and delete attachment rows (files after commit)
            3. Delete the messages, then memberships, then the group

        Error codes:
            PERMISSION_DENIED: User is neither the owner nor an admin
        """
        if not group.can_manage(user):
            cls.get_logger().warning(f"User {user.id} tried to delete group {group.id}")
            return ServiceResult.failure(
                "Only the group owner or an admin can delete this group",
                error_code="PERMISSION_DENIED",
            )

        group_id = group.id
        with cls.atomic():
            locked = Group.objects.select_for_update().get(pk=group_id)
            locked.last_message = None
            locked.save(update_fields=["last_message", "updated_at"])

            messages = Message.objects.in_group(group_id)
            Message.objects.filter(reply_to__group_id=group_id).update(reply_to=None)

            attachments = MessageAttachment.objects.filter(message__group_id=group_id)
            _delete_files_on_commit(_attachment_files(attachments))
            attachments.delete()

            deleted_messages, _ = messages.delete()
            GroupMembership.objects.filter(group_id=group_id).delete()
            locked.delete()

        cls.get_logger().info(
            f"User {user.id} deleted group {group_id} ({deleted_messages} rows with messages)"
        )
        return ServiceResult.success(None)


# =============================================================================
# Conversation List
# =============================================================================


@dataclass
class ConversationEntry:
    """
    One sidebar row: either a direct thread (is_user) or a group (is_group).
    """

    id: int
    name: str
    is_group: bool
    is_user: bool
    avatar_url: str | None = None
    last_message: str | None = None
    last_message_date: datetime | None = None
    last_message_id: int | None = None
    email: str | None = None
    description: str | None = None
    owner_id: int | None = None
    member_count: int | None = None


def _recency_key(entry: ConversationEntry):
    # Newest first, entries without messages last, then by name
    if entry.last_message_date is None:
        return (1, 0.0, entry.name.lower())
    return (0, -entry.last_message_date.timestamp(), entry.name.lower())


class ConversationListService(BaseService):
    """
    Builds the sidebar conversation list. Read-only.

    Methods:
        build: Every direct counterpart and group of a user, newest first
        entry_for_user: Sidebar row for one direct counterpart
        entry_for_group: Sidebar row for one group
    """

    @classmethod
    def _user_entry(cls, user: User, message: Message | None) -> ConversationEntry:
        return ConversationEntry(
            id=user.id,
            name=user.display_name,
            is_group=False,
            is_user=True,
            avatar_url=user.avatar_url,
            email=user.email,
            last_message=format_preview(message.body) if message else None,
            last_message_date=message.created_at if message else None,
            last_message_id=message.id if message else None,
        )

    @classmethod
    def _group_entry(cls, group: Group, message: Message | None) -> ConversationEntry:
        member_count = getattr(group, "member_count", None)
        if member_count is None:
            member_count = group.memberships.count()
        return ConversationEntry(
            id=group.id,
            name=group.name,
            is_group=True,
            is_user=False,
            description=group.description,
            owner_id=group.owner_id,
            member_count=member_count,
            last_message=format_preview(message.body) if message else None,
            last_message_date=message.created_at if message else None,
            last_message_id=message.id if message else None,
        )

    @classmethod
    def entry_for_user(cls, requester: User, other: User) -> ConversationEntry:
        latest = Message.objects.between(requester.id, other.id).latest_first().first()
        return cls._user_entry(other, latest)

    @classmethod
    def entry_for_group(cls, group: Group) -> ConversationEntry:
        latest = Message.objects.in_group(group.id).latest_first().first()
        return cls._group_entry(group, latest)

    @classmethod
    def build(cls, user: User, limit: int = CONVERSATION_CONFIG.MAX_ENTRIES) -> list[ConversationEntry]:
        """
        Assemble the sidebar for ``user``.

        Direct rows: every user who exchanged at least one message with
        ``user``, previewing the latest message between them. Group rows:
        every group ``user`` belongs to, previewing its latest message.
        Rows are merged newest first; rows without messages sort last.
        """
        latest_between = (
            Message.objects.between(user.id, OuterRef("pk")).latest_first().values("id")[:1]
        )
        counterparts = (
            User.objects.filter(
                Q(pk__in=Message.objects.filter(receiver_id=user.id).values("sender_id"))
                | Q(
                    pk__in=Message.objects.filter(
                        sender_id=user.id, receiver__isnull=False
                    ).values("receiver_id")
                )
            )
            .exclude(pk=user.id)
            .annotate(latest_message_id=Subquery(latest_between))
            .filter(latest_message_id__isnull=False)
        )
        counterparts = list(counterparts)

        groups = list(
            Group.objects.for_member(user.id)
            .annotate(
                member_count=Count("memberships"),
                latest_message_id=Subquery(
                    Message.objects.filter(group_id=OuterRef("pk"))
                    .latest_first()
                    .values("id")[:1]
                ),
            )
        )

        message_ids = [u.latest_message_id for u in counterparts] + [
            g.latest_message_id for g in groups if g.latest_message_id
        ]
        messages = Message.objects.in_bulk(message_ids)

        entries = [cls._user_entry(u, messages.get(u.latest_message_id)) for u in counterparts]
        entries += [cls._group_entry(g, messages.get(g.latest_message_id)) for g in groups]
        entries.sort(key=_recency_key)

        return entries[:limit]


__all__ = [
    "ConversationEntry",
    "ConversationListService",
    "GroupService",
    "MessageService",
    "PointerService",
]
