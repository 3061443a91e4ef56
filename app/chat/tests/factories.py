"""
Factory Boy factories for chat models.

Provides realistic test data generation for:
- Group: Group thread with owner membership
- GroupMembership: User membership in a group
- Message: Direct and group messages
- MessageAttachment: Files attached to a message

Factories write rows directly and do not maintain last_message pointers;
use chat.services.MessageService when a test depends on them.

Usage:
    from chat.tests.factories import (
        GroupFactory,
        DirectMessageFactory,
        GroupMessageFactory,
        backdate,
    )

    # Group owned by a user, with two extra members
    group = GroupFactory(owner=alice, members=[bob, carol])

    # Direct message
    message = DirectMessageFactory(sender=alice, receiver=bob, body="hi")

    # Move a message back in time
    backdate(message, minutes=5)
"""

from datetime import timedelta

import factory
from django.core.files.base import ContentFile
from django.utils import timezone

from authentication.tests.factories import UserFactory
from chat.models import Group, GroupMembership, Message, MessageAttachment


class GroupFactory(factory.django.DjangoModelFactory):
    """
    Factory for Group model.

    The owner is always added as a member. Pass members=[...] to add more.

    Examples:
        group = GroupFactory()
        group = GroupFactory(name="Project Team", owner=alice, members=[bob])
    """

    class Meta:
        model = Group
        skip_postgeneration_save = True

    name = factory.Sequence(lambda n: f"Group {n}")
    description = ""
    owner = factory.SubFactory(UserFactory)

    @factory.post_generation
    def members(self, create, extracted, **kwargs):
        if not create:
            return
        GroupMembership.objects.get_or_create(group=self, user=self.owner)
        for user in extracted or []:
            GroupMembership.objects.get_or_create(group=self, user=user)


class GroupMembershipFactory(factory.django.DjangoModelFactory):
    """Factory for GroupMembership model."""

    class Meta:
        model = GroupMembership

    group = factory.SubFactory(GroupFactory)
    user = factory.SubFactory(UserFactory)
    last_read_at = None


class DirectMessageFactory(factory.django.DjangoModelFactory):
    """
    Factory for direct messages.

    Examples:
        message = DirectMessageFactory(sender=alice, receiver=bob)
        voice = DirectMessageFactory(body="[VOICE_MESSAGE:75]")
    """

    class Meta:
        model = Message

    sender = factory.SubFactory(UserFactory)
    receiver = factory.SubFactory(UserFactory)
    group = None
    body = factory.Sequence(lambda n: f"Message {n}")
    reply_to = None
    read_at = None


class GroupMessageFactory(factory.django.DjangoModelFactory):
    """
    Factory for group messages.

    The sender defaults to the group's owner.

    Examples:
        message = GroupMessageFactory(group=group, sender=bob)
    """

    class Meta:
        model = Message

    group = factory.SubFactory(GroupFactory)
    sender = factory.LazyAttribute(lambda o: o.group.owner)
    receiver = None
    body = factory.Sequence(lambda n: f"Group message {n}")
    reply_to = None


class MessageAttachmentFactory(factory.django.DjangoModelFactory):
    """
    Factory for MessageAttachment model.

    Examples:
        MessageAttachmentFactory(message=message, mime="image/png", name="a.png")
    """

    class Meta:
        model = MessageAttachment

    message = factory.SubFactory(DirectMessageFactory)
    name = "file.bin"
    mime = "application/octet-stream"
    size = 4
    file = factory.LazyAttribute(lambda o: ContentFile(b"data", name=o.name))


def backdate(message: Message, minutes: int = 0, seconds: int = 0) -> Message:
    """Move a message's created_at into the past and return it refreshed."""
    created_at = timezone.now() - timedelta(minutes=minutes, seconds=seconds)
    Message.objects.filter(pk=message.pk).update(created_at=created_at)
    message.refresh_from_db()
    return message
