"""
Serializers for chat API endpoints.

This module provides DRF serializers for:
- Messages (read payload, embedded reply preview, send request)
- Attachments
- Groups (read, create, update)
- Conversation list entries

Wire names:
    The message text is exposed as "message" (stored as Message.body).
    A send request names its thread with exactly one of receiver_id or
    group_id; validate() turns the pair into a ThreadTarget.
"""

from rest_framework import serializers
from rest_framework.utils import html

from authentication.serializers import UserSerializer
from chat.constants import ATTACHMENT_CONFIG, MESSAGE_CONFIG
from chat.models import Group, Message, MessageAttachment
from chat.threads import build_target
from core.validators import validate_file_size


def _absolute(request, url: str | None) -> str | None:
    if url and request is not None:
        return request.build_absolute_uri(url)
    return url


class AttachmentListField(serializers.ListField):
    """
    File list read from the repeated form key, with or without a trailing "[]".

    Mobile clients post "attachments[]"; DRF only matches the bare name.
    """

    def get_value(self, dictionary):
        if html.is_html_input(dictionary):
            files = dictionary.getlist(self.field_name, []) + dictionary.getlist(
                f"{self.field_name}[]", []
            )
            if files:
                return files
        return super().get_value(dictionary)


class AttachmentSerializer(serializers.ModelSerializer):
    """Attachment metadata plus a download URL."""

    url = serializers.SerializerMethodField()

    class Meta:
        model = MessageAttachment
        fields = ["id", "name", "mime", "size", "url"]
        read_only_fields = fields

    def get_url(self, obj) -> str | None:
        if not obj.file:
            return None
        return _absolute(self.context.get("request"), obj.file.url)


class ReplyPreviewSerializer(serializers.ModelSerializer):
    """Compact view of the message being replied to."""

    message = serializers.CharField(source="body", read_only=True, allow_null=True)
    sender = UserSerializer(read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = ["id", "message", "sender", "attachments", "created_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message payload.

    Used for thread reads, the send response and the realtime broadcast.
    reply_to is null both for non-replies and for replies whose original
    message was deleted; reply_to_id tells the two apart only while the
    original exists.
    """

    message = serializers.CharField(source="body", read_only=True, allow_null=True)
    sender = UserSerializer(read_only=True)
    attachments = AttachmentSerializer(many=True, read_only=True)
    reply_to = ReplyPreviewSerializer(read_only=True, allow_null=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "message",
            "sender_id",
            "receiver_id",
            "group_id",
            "sender",
            "attachments",
            "reply_to_id",
            "reply_to",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for sending a message (multipart form).

    validated_data["target"] holds the ThreadTarget.
    """

    message = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        trim_whitespace=False,
    )
    receiver_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    group_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    reply_to_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    attachments = AttachmentListField(
        child=serializers.FileField(
            validators=[validate_file_size(ATTACHMENT_CONFIG.MAX_FILE_SIZE_KB)],
        ),
        required=False,
        allow_empty=True,
        max_length=ATTACHMENT_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE,
    )

    def validate(self, attrs):
        try:
            attrs["target"] = build_target(attrs.get("receiver_id"), attrs.get("group_id"))
        except ValueError as e:
            raise serializers.ValidationError(
                {"receiver_id": [str(e)], "group_id": [str(e)]}
            ) from e
        return attrs


class GroupSerializer(serializers.ModelSerializer):
    """Group with member ids, member count and last message."""

    owner = UserSerializer(read_only=True)
    member_ids = serializers.SerializerMethodField()
    member_count = serializers.SerializerMethodField()
    last_message = MessageSerializer(read_only=True, allow_null=True)

    class Meta:
        model = Group
        fields = [
            "id",
            "name",
            "description",
            "owner_id",
            "owner",
            "member_ids",
            "member_count",
            "last_message",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_member_ids(self, obj) -> list[int]:
        return sorted(m.user_id for m in obj.memberships.all())

    def get_member_count(self, obj) -> int:
        count = getattr(obj, "member_count", None)
        if count is None:
            count = obj.memberships.count()
        return count


class GroupCreateSerializer(serializers.Serializer):
    """Serializer for creating a group."""

    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    user_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        help_text="Initial members; the creator is always added",
    )


class GroupUpdateSerializer(serializers.Serializer):
    """Serializer for updating a group. Omitted fields are left unchanged."""

    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    user_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        help_text="Replaces the member set; the owner is always kept",
    )


class ConversationEntrySerializer(serializers.Serializer):
    """One sidebar row (chat.services.ConversationEntry)."""

    id = serializers.IntegerField()
    name = serializers.CharField()
    avatar = serializers.SerializerMethodField()
    is_group = serializers.BooleanField()
    is_user = serializers.BooleanField()
    last_message = serializers.CharField(allow_null=True)
    last_message_date = serializers.DateTimeField(allow_null=True)
    last_message_id = serializers.IntegerField(allow_null=True)
    email = serializers.EmailField(allow_null=True, required=False)
    description = serializers.CharField(allow_null=True, required=False)
    owner_id = serializers.IntegerField(allow_null=True, required=False)
    member_count = serializers.IntegerField(allow_null=True, required=False)

    def get_avatar(self, obj) -> str | None:
        return _absolute(self.context.get("request"), obj.avatar_url)

