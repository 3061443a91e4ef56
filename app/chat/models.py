"""
Chat system models.

This module defines the data models for the chat system supporting:
- Direct (1:1) threads between exactly two users
- Group threads owned by one user with a member set

Models:
    Group: Named group with owner, members and a last-message pointer
    GroupMembership: User membership in a group, with read tracking
    Conversation: One row per unordered user pair, with a last-message pointer
    Message: A message addressed to exactly one user or one group
    MessageAttachment: File uploaded with a message

Design Decisions:
    - Conversation stores its pair canonically (lower user id first) so the
      unique constraint covers (A, B) and (B, A) alike
    - last_message on Group/Conversation is a non-owning pointer kept up to date
      by chat.services.PointerService; it never drives deletion
    - Message addressing is enforced by a check constraint (receiver XOR group)
    - Deleting a message nulls reply_to on its replies; replies survive and are
      rendered as replying to a deleted message
    - Read tracking: direct messages carry read_at; group members carry
      last_read_at on their membership row
"""

from __future__ import annotations

import os
import secrets
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from chat.constants import ATTACHMENT_CONFIG
from chat.managers import ConversationQuerySet, GroupQuerySet, MessageQuerySet
from chat.previews import parse_voice_duration
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


class Group(BaseModel):
    """
    Group thread container.

    Fields:
        name: Display name
        description: Optional free text
        owner: Creator; always a member; may edit and delete the group
        members: Users in the group (through GroupMembership)
        last_message: Pointer to the newest message of the group (nullable)

    Invariant:
        last_message, when set, references a Message with group == self.
    """

    name = models.CharField(
        max_length=255,
        help_text="Group display name",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Optional group description",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_groups",
        help_text="User who created and owns the group",
    )
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="GroupMembership",
        related_name="chat_groups",
        help_text="Users belonging to this group",
    )
    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this group (maintained pointer)",
    )

    objects = GroupQuerySet.as_manager()

    class Meta:
        db_table = "chat_group"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"Group({self.id}, {self.name!r})"

    def has_member(self, user: User) -> bool:
        return self.memberships.filter(user_id=user.id).exists()

    def can_manage(self, user: User) -> bool:
        """Owner and application admins may edit or delete the group."""
        return self.owner_id == user.id or bool(getattr(user, "is_admin", False))


class GroupMembership(BaseModel):
    """
    Membership of a user in a group.

    Fields:
        group: The group
        user: The member
        last_read_at: Last time the member marked the group read (unread counts)
    """

    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Group this membership belongs to",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="group_memberships",
        help_text="Member user",
    )
    last_read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last time the member read the group (for unread counts)",
    )

    class Meta:
        db_table = "chat_group_membership"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["group", "user"],
                name="unique_group_membership",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "group"], name="chat_membership_user_idx"),
        ]

    def __str__(self) -> str:
        return f"GroupMembership(group={self.group_id}, user={self.user_id})"


class Conversation(BaseModel):
    """
    Direct conversation between an unordered pair of users.

    Created lazily by the first message between the two users.

    Fields:
        user_lower: User with the lower id
        user_higher: User with the higher id
        last_message: Pointer to the newest message between them (nullable)

    Constraints:
        - One row per pair (unique on user_lower, user_higher)
        - user_lower_id < user_higher_id
    """

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this conversation pair",
    )
    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this conversation pair",
    )
    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message between the pair (maintained pointer)",
    )

    objects = ConversationQuerySet.as_manager()

    class Meta:
        db_table = "chat_conversation"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="conversation_user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"Conversation({self.user_lower_id}, {self.user_higher_id})"

    def other_user_id(self, user_id: int) -> int:
        if user_id == self.user_lower_id:
            return self.user_higher_id
        return self.user_lower_id


class Message(BaseModel):
    """
    A chat message.

    Fields:
        body: Text (nullable when only attachments are sent). A voice message
            carries the literal "[VOICE_MESSAGE:<seconds>]"
        sender: Author; the only user allowed to delete it
        receiver: Recipient of a direct message (null for group messages)
        group: Group of a group message (null for direct messages)
        reply_to: Message this one replies to (same thread, nullable)
        read_at: When the receiver read a direct message

    Constraints:
        Exactly one of receiver / group is set.
    """

    body = models.TextField(
        null=True,
        blank=True,
        help_text="Message text (empty when only attachments are sent)",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="received_messages",
        help_text="Recipient of a direct message",
    )
    group = models.ForeignKey(
        Group,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
        help_text="Group of a group message",
    )
    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message this one replies to",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the receiver read this direct message",
    )

    objects = MessageQuerySet.as_manager()

    class Meta:
        db_table = "chat_message"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(receiver__isnull=False, group__isnull=True)
                    | Q(receiver__isnull=True, group__isnull=False)
                ),
                name="message_receiver_xor_group",
            ),
        ]
        indexes = [
            models.Index(
                fields=["group", "-created_at", "-id"],
                name="chat_msg_group_recent_idx",
            ),
            models.Index(
                fields=["sender", "receiver", "-created_at"],
                name="chat_msg_pair_recent_idx",
            ),
            models.Index(
                fields=["receiver", "read_at"],
                name="chat_msg_receiver_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        target = f"group={self.group_id}" if self.group_id else f"receiver={self.receiver_id}"
        return f"Message({self.id}, sender={self.sender_id}, {target})"

    @property
    def is_group_message(self) -> bool:
        return self.group_id is not None

    @property
    def voice_duration(self) -> int | None:
        """Duration in seconds when the body is a voice sentinel, else None."""
        return parse_voice_duration(self.body)


def attachment_upload_path(instance: MessageAttachment, filename: str) -> str:
    """
    Build the storage path for a message attachment.

    Format: attachments/<random32>/<original filename>
    Files reported as audio/m4a keep an .m4a extension whatever the client sent.
    """
    filename = os.path.basename(filename)
    if instance.mime == ATTACHMENT_CONFIG.M4A_MIME_TYPE:
        stem, ext = os.path.splitext(filename)
        if ext.lower() != ".m4a":
            filename = f"{stem or 'voice'}.m4a"
    return os.path.join("attachments", secrets.token_hex(16), filename)


class MessageAttachment(BaseModel):
    """
    A file uploaded with a message. Owned by the message.

    Fields:
        message: Owning message
        file: Stored file
        name: Original filename
        mime: Client-reported MIME type
        size: Size in bytes
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="attachments",
        help_text="Message this file belongs to",
    )
    file = models.FileField(
        upload_to=attachment_upload_path,
        max_length=500,
        help_text="Stored file",
    )
    name = models.CharField(
        max_length=255,
        help_text="Original filename",
    )
    mime = models.CharField(
        max_length=255,
        help_text="MIME type reported at upload",
    )
    size = models.PositiveBigIntegerField(
        help_text="File size in bytes",
    )

    class Meta:
        db_table = "chat_message_attachment"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"MessageAttachment({self.id}, {self.name!r})"

    @property
    def is_audio(self) -> bool:
        return self.mime.startswith("audio/")

    @property
    def is_image(self) -> bool:
        return self.mime.startswith("image/")
