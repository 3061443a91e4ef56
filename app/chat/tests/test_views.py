"""
Tests for chat API views.

This module tests:
- ConversationListView: GET /api/v1/conversations/
- MessageCreateView: POST /api/v1/messages/
- MessageDetailView: DELETE /api/v1/messages/{id}/
- Thread reads, older pages and read markers
- Group CRUD

Testing Philosophy:
    Tests focus on observable HTTP behavior:
    - Response status codes (service error codes mapped to 400/403/404)
    - Response body structure and content
    - Database state changes
"""

from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from chat.models import Conversation, Group, GroupMembership, Message, MessageAttachment
from chat.services import MessageService
from chat.threads import DirectTarget, GroupTarget


# =============================================================================
# URL Constants
# =============================================================================


CONVERSATIONS_URL = "/api/v1/conversations/"
MESSAGES_URL = "/api/v1/messages/"
GROUPS_URL = "/api/v1/groups/"


def message_url(pk):
    return f"/api/v1/messages/{pk}/"


def older_url(pk):
    return f"/api/v1/messages/{pk}/older/"


def user_thread_url(user_id):
    return f"/api/v1/messages/user/{user_id}/"


def group_thread_url(group_id):
    return f"/api/v1/messages/group/{group_id}/"


def group_url(pk):
    return f"/api/v1/groups/{pk}/"


def _send(sender, target, body="hello", **kwargs):
    return MessageService.send_message(sender=sender, target=target, body=body, **kwargs).data


# =============================================================================
# TestMessageCreateView
# =============================================================================


class TestMessageCreateView:
    """
    Tests for POST /api/v1/messages/.

    Verifies:
    - Direct and group sends answer 201 with the full payload
    - receiver_id XOR group_id
    - Service error codes map to HTTP statuses
    """

    def test_requires_authentication(self, api_client, bob):
        response = api_client.post(MESSAGES_URL, {"message": "hi", "receiver_id": bob.id})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_direct_send_returns_created_message(self, alice_client, alice, bob):
        """
        A text message to a user answers 201 with the stored message.

        Why it matters: The client appends the response to the open thread.
        """
        response = alice_client.post(
            MESSAGES_URL, {"message": "hi", "receiver_id": bob.id}, format="multipart"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["message"] == "hi"
        assert response.data["receiver_id"] == bob.id
        assert response.data["group_id"] is None
        assert response.data["sender"]["id"] == alice.id
        assert Conversation.objects.for_pair(alice.id, bob.id).get().last_message_id == (
            response.data["id"]
        )

    def test_group_send_with_attachments(self, alice_client, group):
        photo = SimpleUploadedFile("a.png", b"png-bytes", content_type="image/png")
        note = SimpleUploadedFile("b.txt", b"text", content_type="text/plain")

        response = alice_client.post(
            MESSAGES_URL,
            {"group_id": group.id, "attachments": [photo, note]},
            format="multipart",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["message"] is None
        assert [a["name"] for a in response.data["attachments"]] == ["a.png", "b.txt"]
        assert response.data["attachments"][0]["url"].startswith("http://testserver/")

    def test_bracketed_attachments_key_is_accepted(self, alice_client, bob):
        """
        Files posted as "attachments[]" are stored like "attachments".

        Why it matters: The mobile app sends voice notes under that key; dropping
        them leaves a voice message with no audio.
        """
        voice = SimpleUploadedFile("voice.m4a", b"m4a-bytes", content_type="audio/m4a")

        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": bob.id, "message": "[VOICE_MESSAGE:7]", "attachments[]": [voice]},
            format="multipart",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert [a["name"] for a in response.data["attachments"]] == ["voice.m4a"]
        assert MessageAttachment.objects.filter(message_id=response.data["id"]).count() == 1

    def test_reply_payload_embeds_original(self, alice_client, alice, bob):
        original = _send(bob, DirectTarget(user_id=alice.id), body="question")

        response = alice_client.post(
            MESSAGES_URL,
            {"message": "answer", "receiver_id": bob.id, "reply_to_id": original.id},
            format="multipart",
        )

        assert response.data["reply_to_id"] == original.id
        assert response.data["reply_to"]["message"] == "question"
        assert response.data["reply_to"]["sender"]["id"] == bob.id

    def test_both_receiver_and_group_rejected(self, alice_client, bob, group):
        """
        Naming both a user and a group is a 400 and writes nothing.

        Why it matters: A message belongs to exactly one thread.
        """
        response = alice_client.post(
            MESSAGES_URL,
            {"message": "hi", "receiver_id": bob.id, "group_id": group.id},
            format="multipart",
        )

        group.refresh_from_db()
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "receiver_id" in response.data
        assert Message.objects.count() == 0
        assert Conversation.objects.count() == 0
        assert group.last_message_id is None

    def test_neither_receiver_nor_group_rejected(self, alice_client):
        response = alice_client.post(MESSAGES_URL, {"message": "hi"}, format="multipart")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Message.objects.count() == 0

    def test_empty_message_rejected(self, alice_client, bob):
        response = alice_client.post(
            MESSAGES_URL, {"message": "", "receiver_id": bob.id}, format="multipart"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_too_many_attachments_rejected(self, alice_client, bob):
        files = [
            SimpleUploadedFile(f"f{i}.txt", b"x", content_type="text/plain") for i in range(11)
        ]

        response = alice_client.post(
            MESSAGES_URL, {"receiver_id": bob.id, "attachments": files}, format="multipart"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "attachments" in response.data

    def test_non_member_group_send_is_403(self, outsider_client, group):
        response = outsider_client.post(
            MESSAGES_URL, {"message": "hi", "group_id": group.id}, format="multipart"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_MEMBER"

    def test_unknown_receiver_is_404(self, alice_client):
        response = alice_client.post(
            MESSAGES_URL, {"message": "hi", "receiver_id": 999999}, format="multipart"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# TestMessageDetailView
# =============================================================================


class TestMessageDetailView:
    """
    Tests for DELETE /api/v1/messages/{id}/.

    Verifies:
    - Response carries the thread's new last message
    - Non-sender gets 403 and nothing changes
    """

    def test_delete_returns_new_last_message(self, alice_client, alice, bob):
        """
        Bob says "hi", Alice says "hello", Alice deletes "hello".

        Why it matters: The client updates its sidebar from this response.
        """
        m1 = _send(bob, DirectTarget(user_id=alice.id), body="hi")
        m2 = _send(alice, DirectTarget(user_id=bob.id), body="hello")

        response = alice_client.delete(message_url(m2.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["message"] == "Message deleted successfully"
        assert response.data["last_message"]["id"] == m1.id
        assert response.data["last_message"]["message"] == "hi"
        assert Conversation.objects.get().last_message_id == m1.id

    def test_delete_last_remaining_returns_null(self, alice_client, alice, bob):
        only = _send(alice, DirectTarget(user_id=bob.id))

        response = alice_client.delete(message_url(only.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["last_message"] is None

    def test_non_sender_gets_403(self, bob_client, alice, bob):
        message = _send(alice, DirectTarget(user_id=bob.id))

        response = bob_client.delete(message_url(message.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "PERMISSION_DENIED"
        assert Message.objects.filter(pk=message.pk).exists()

    def test_missing_message_is_404(self, alice_client):
        response = alice_client.delete(message_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# TestThreadViews
# =============================================================================


class TestThreadViews:
    """
    Tests for thread reads.

    Verifies:
    - {selected_conversation, messages} envelope
    - Pages of 10, newest first
    - Older pages and access control
    """

    def test_user_thread_first_page(self, alice_client, alice, bob):
        """
        The latest ten messages come first, with a cursor for more.

        Why it matters: Chat screens open at the bottom of the thread.
        """
        sent = [_send(alice, DirectTarget(user_id=bob.id), body=str(i)) for i in range(12)]

        response = alice_client.get(user_thread_url(bob.id))

        messages = response.data["messages"]
        assert response.status_code == status.HTTP_200_OK
        assert response.data["selected_conversation"]["id"] == bob.id
        assert response.data["selected_conversation"]["is_user"] is True
        assert len(messages["results"]) == 10
        assert messages["results"][0]["id"] == sent[-1].id
        assert messages["next"] is not None

    def test_user_thread_unknown_user_is_404(self, alice_client):
        assert alice_client.get(user_thread_url(999999)).status_code == status.HTTP_404_NOT_FOUND

    def test_group_thread_for_member(self, bob_client, group, alice):
        message = _send(alice, GroupTarget(group_id=group.id))

        response = bob_client.get(group_thread_url(group.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["selected_conversation"]["is_group"] is True
        assert response.data["selected_conversation"]["member_count"] == 3
        assert [m["id"] for m in response.data["messages"]["results"]] == [message.id]

    def test_group_thread_for_outsider_is_403(self, outsider_client, group):
        response = outsider_client.get(group_thread_url(group.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_older_page(self, bob_client, alice, bob):
        m1 = _send(alice, DirectTarget(user_id=bob.id), body="1")
        m2 = _send(alice, DirectTarget(user_id=bob.id), body="2")

        response = bob_client.get(older_url(m2.id))

        assert response.status_code == status.HTTP_200_OK
        assert [m["id"] for m in response.data["results"]] == [m1.id]

    def test_older_for_outsider_is_403(self, outsider_client, alice, bob):
        message = _send(alice, DirectTarget(user_id=bob.id))

        response = outsider_client.get(older_url(message.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_PARTY"

    def test_mark_user_thread_read(self, bob_client, alice, bob):
        _send(alice, DirectTarget(user_id=bob.id))

        response = bob_client.post(f"{user_thread_url(alice.id)}read/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["updated"] == 1
        assert MessageService.get_unread_count(bob) == 0

    def test_mark_group_thread_read(self, bob_client, bob, group):
        response = bob_client.post(f"{group_thread_url(group.id)}read/")

        assert response.status_code == status.HTTP_200_OK
        assert GroupMembership.objects.get(group=group, user=bob).last_read_at is not None


# =============================================================================
# TestConversationListView
# =============================================================================


class TestConversationListView:
    """
    Tests for GET /api/v1/conversations/.

    Verifies:
    - Entry shape for direct and group rows
    - Empty list for a user without threads
    """

    def test_empty_for_new_user(self, outsider_client):
        response = outsider_client.get(CONVERSATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

    def test_entry_shape(self, alice_client, alice, bob, group):
        _send(bob, DirectTarget(user_id=alice.id), body="[VOICE_MESSAGE:9]")

        response = alice_client.get(CONVERSATIONS_URL)

        direct = response.data[0]
        assert direct["id"] == bob.id
        assert direct["is_user"] is True
        assert direct["is_group"] is False
        assert direct["name"] == "Bob"
        assert direct["avatar"] is None
        assert direct["last_message"] == "\U0001f3a4 9s"
        assert direct["last_message_date"] is not None

        group_row = response.data[1]
        assert group_row["id"] == group.id
        assert group_row["is_group"] is True
        assert group_row["last_message"] is None


# =============================================================================
# TestGroupViews
# =============================================================================


class TestGroupListCreateView:
    """
    Tests for GET/POST /api/v1/groups/.

    Verifies:
    - Listing only the caller's groups
    - Creation with the caller as owner
    """

    def test_list_my_groups(self, bob_client, group):
        response = bob_client.get(GROUPS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [g["id"] for g in response.data] == [group.id]
        assert response.data[0]["member_count"] == 3

    def test_create_group(self, alice_client, alice, bob):
        response = alice_client.post(
            GROUPS_URL,
            {"name": "Trip", "description": "Summer", "user_ids": [bob.id]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["owner_id"] == alice.id
        assert response.data["member_ids"] == sorted([alice.id, bob.id])

    def test_create_requires_members(self, alice_client):
        response = alice_client.post(GROUPS_URL, {"name": "Solo", "user_ids": []}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert Group.objects.count() == 0


class TestGroupDetailView:
    """
    Tests for GET/PUT/DELETE /api/v1/groups/{id}/.

    Verifies:
    - Members may read, outsiders may not
    - Owner/admin may update and delete; members get 403
    """

    def test_member_can_read(self, bob_client, group):
        response = bob_client.get(group_url(group.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["name"] == "Team"

    def test_outsider_cannot_read(self, outsider_client, group):
        assert outsider_client.get(group_url(group.id)).status_code == status.HTTP_403_FORBIDDEN

    def test_missing_group_is_404(self, alice_client):
        assert alice_client.get(group_url(999999)).status_code == status.HTTP_404_NOT_FOUND

    def test_owner_updates(self, alice_client, group):
        response = alice_client.put(group_url(group.id), {"name": "Renamed"}, format="json")

        group.refresh_from_db()
        assert response.status_code == status.HTTP_200_OK
        assert group.name == "Renamed"

    def test_member_update_is_403(self, bob_client, group):
        response = bob_client.put(group_url(group.id), {"name": "Mine now"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_non_owner_delete_is_403_and_keeps_everything(self, bob_client, alice, group):
        """
        Bob cannot delete Alice's group; group and messages survive.

        Why it matters: Only the owner or an admin may destroy a thread.
        """
        message = _send(alice, GroupTarget(group_id=group.id))

        response = bob_client.delete(group_url(group.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Group.objects.filter(pk=group.pk).exists()
        assert Message.objects.filter(pk=message.pk).exists()

    def test_owner_deletes(self, alice_client, alice, group):
        _send(alice, GroupTarget(group_id=group.id))

        response = alice_client.delete(group_url(group.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["message"] == "Group deleted successfully"
        assert not Group.objects.filter(pk=group.pk).exists()
        assert Message.objects.count() == 0
