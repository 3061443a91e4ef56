"""
Notification fan-out for new messages.

Given a stored message, MessageNotificationService decides who gets a push,
builds the title/body/badge/data, and sends one push per recipient.

Recipients:
    - Direct message: the receiver (never the sender)
    - Group message: every member except the sender
    Recipients without a push token are skipped.

Content:
    - Title: the sender's display name, for direct and group messages alike
    - Body: the text; a voice sentinel reads "Sent a voice message";
      attachment-only messages read "Sent a voice message" / "Sent a photo" /
      "Sent an attachment" by MIME type; otherwise "New message"
    - Badge: the recipient's unread count, counting this message once

    A voice-message body is stored as the sentinel "[VOICE_MESSAGE:<seconds>]".
    Pushing it verbatim would show that raw marker on the lock screen, so it
    is replaced by "Sent a voice message" even though the text is non-empty.
    Every other non-empty body is sent as written.

Failure policy:
    Each recipient is attempted exactly once and independently. Failures are
    logged and counted, never raised. A permanent provider rejection clears
    the stale token from the recipient.

Usage:
    from notifications.services import MessageNotificationService

    result = MessageNotificationService.notify(message)
    result.data.sent  # number of pushes accepted by a provider
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings

from authentication.models import User
from chat.previews import parse_voice_duration
from chat.services import MessageService
from core.services import BaseService, ServiceResult
from notifications.push import PushClient, PushDeliveryError

if TYPE_CHECKING:
    from typing import Any

    from chat.models import Message

VOICE_BODY = "Sent a voice message"
PHOTO_BODY = "Sent a photo"
ATTACHMENT_BODY = "Sent an attachment"
FALLBACK_BODY = "New message"


@dataclass
class FanOutResult:
    """Per-message delivery summary."""

    message_id: int
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)


class MessageNotificationService(BaseService):
    """
    Push fan-out for a just-created message.

    Methods:
        recipients_for: Users who should be notified
        build_title / build_body / build_badge / build_data: Payload parts
        notify: Send to every recipient, best-effort
    """

    @classmethod
    def recipients_for(cls, message: Message) -> list[User]:
        """
        Users to notify, excluding the sender. Includes users without a
        push token; notify() skips those.
        """
        if message.group_id is not None:
            return list(
                User.objects.filter(
                    group_memberships__group_id=message.group_id,
                    is_active=True,
                )
                .exclude(pk=message.sender_id)
                .order_by("id")
            )

        if message.receiver_id is None or message.receiver_id == message.sender_id:
            return []
        return list(User.objects.filter(pk=message.receiver_id, is_active=True))

    @classmethod
    def build_title(cls, message: Message) -> str:
        return message.sender.display_name

    @classmethod
    def build_body(cls, message: Message) -> str:
        body = (message.body or "").strip()
        if body:
            if parse_voice_duration(body) is not None:
                return VOICE_BODY
            return body

        mimes = [attachment.mime for attachment in message.attachments.all()]
        if not mimes:
            return FALLBACK_BODY
        if any(mime.startswith("audio/") for mime in mimes):
            return VOICE_BODY
        if any(mime.startswith("image/") for mime in mimes):
            return PHOTO_BODY
        return ATTACHMENT_BODY

    @classmethod
    def build_badge(cls, message: Message, recipient: User) -> int:
        """Unread messages addressed to the recipient, this one included once."""
        return MessageService.get_unread_count(recipient, exclude_message_id=message.id) + 1

    @classmethod
    def build_data(cls, message: Message) -> dict[str, Any]:
        is_group = message.group_id is not None
        return {
            "type": "new_message",
            "message_id": str(message.id),
            "sender_id": str(message.sender_id),
            "sender_name": message.sender.display_name,
            # The thread id as the recipient's client addresses it
            "conversation_id": str(message.group_id if is_group else message.sender_id),
            "conversation_type": "group" if is_group else "user",
            "group_id": str(message.group_id) if is_group else "",
            "receiver_id": "" if is_group else str(message.receiver_id),
        }

    @classmethod
    def _forget_token(cls, recipient: User, token: str) -> None:
        cleared = User.objects.filter(pk=recipient.pk, push_token=token).update(push_token=None)
        if cleared:
            cls.get_logger().info(f"Cleared rejected push token of user {recipient.id}")

    @classmethod
    def notify(
        cls,
        message: Message,
        client: PushClient | None = None,
    ) -> ServiceResult[FanOutResult]:
        """
        Send one push per recipient.

        Always succeeds; per-recipient outcomes are in the FanOutResult.
        """
        logger = cls.get_logger()
        result = FanOutResult(message_id=message.id)

        if not settings.PUSH_NOTIFICATIONS_ENABLED:
            logger.debug(f"Push disabled, not notifying for message {message.id}")
            return ServiceResult.success(result)

        client = client or PushClient()
        title = cls.build_title(message)
        body = cls.build_body(message)
        data = cls.build_data(message)

        for recipient in cls.recipients_for(message):
            token = recipient.push_token
            if not token:
                result.skipped += 1
                logger.debug(f"User {recipient.id} has no push token, skipping")
                continue

            result.attempted += 1
            try:
                provider = client.send(
                    token,
                    title=title,
                    body=body,
                    data=data,
                    badge=cls.build_badge(message, recipient),
                )
            except PushDeliveryError as e:
                result.failed += 1
                result.failures.append({"user_id": recipient.id, **e.to_dict()})
                logger.warning(
                    f"Push for message {message.id} to user {recipient.id} failed: {e}"
                )
                if e.is_permanent:
                    cls._forget_token(recipient, token)
                continue
            except Exception as e:
                result.failed += 1
                result.failures.append({"user_id": recipient.id, "error": str(e)})
                logger.exception(
                    f"Unexpected error pushing message {message.id} to user {recipient.id}"
                )
                continue

            result.sent += 1
            logger.info(f"Push for message {message.id} sent to user {recipient.id} via {provider}")

        logger.info(
            f"Fan-out for message {message.id}: attempted={result.attempted} "
            f"sent={result.sent} failed={result.failed} skipped={result.skipped}"
        )
        return ServiceResult.success(result)
