"""
Views for chat API.

This module provides REST API endpoints for the chat system:
- Conversation list (sidebar)
- Message send / delete / thread reads / read markers
- Group CRUD

URL Structure (prefixed with /api/v1/):
    /conversations/                        GET
    /messages/                             POST
    /messages/{id}/                        DELETE
    /messages/{id}/older/                  GET
    /messages/user/{user_id}/              GET
    /messages/user/{user_id}/read/         POST
    /messages/group/{group_id}/            GET
    /messages/group/{group_id}/read/       POST
    /groups/                               GET, POST
    /groups/{id}/                          GET, PUT, DELETE

Design Decisions:
    - Views validate requests with serializers and delegate to chat.services
    - Authorization (sender-only delete, owner/admin group changes, group
      membership) is decided by the services, which report it through
      ServiceResult error codes mapped by core.views.service_error_response
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.models import User
from chat.models import Group, Message
from chat.pagination import MessageCursorPagination
from chat.serializers import (
    ConversationEntrySerializer,
    GroupCreateSerializer,
    GroupSerializer,
    GroupUpdateSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)
from chat.services import (
    ConversationListService,
    GroupService,
    MessageService,
)
from chat.threads import DirectTarget, GroupTarget
from core.services import ServiceResult
from core.views import service_error_response


def _message_data(request, message) -> dict | None:
    if message is None:
        return None
    return MessageSerializer(message, context={"request": request}).data


class MessagePageMixin:
    """Paginate a message queryset with MessageCursorPagination."""

    def paginate_messages(self, request, queryset) -> dict:
        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        data = MessageSerializer(page, many=True, context={"request": request}).data
        return paginator.get_paginated_response(data).data


# =============================================================================
# Conversation List
# =============================================================================


class ConversationListView(APIView):
    """
    GET: Sidebar list of direct threads and groups, most recent first.

    URL: /api/v1/conversations/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List conversations",
        tags=["Chat - Conversations"],
        responses={200: ConversationEntrySerializer(many=True)},
    )
    def get(self, request):
        entries = ConversationListService.build(request.user)
        return Response(
            ConversationEntrySerializer(entries, many=True, context={"request": request}).data
        )


# =============================================================================
# Messages
# =============================================================================


class MessageCreateView(APIView):
    """
    POST: Send a message (multipart: message, receiver_id | group_id,
    reply_to_id, attachments[]).

    URL: /api/v1/messages/
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    @extend_schema(
        summary="Send message",
        tags=["Chat - Messages"],
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Validation error"),
            403: OpenApiResponse(description="Not a group member"),
            404: OpenApiResponse(description="Receiver or group not found"),
        },
    )
    def post(self, request):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.send_message(
            sender=request.user,
            target=data["target"],
            body=data.get("message"),
            reply_to_id=data.get("reply_to_id"),
            files=data.get("attachments", []),
        )
        if not result.success:
            return service_error_response(result)

        message = Message.objects.with_details().get(pk=result.data.pk)
        return Response(_message_data(request, message), status=status.HTTP_201_CREATED)


class MessageDetailView(APIView):
    """
    DELETE: Delete own message. Returns the thread's new last message.

    URL: /api/v1/messages/{id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Delete message",
        tags=["Chat - Messages"],
        responses={
            200: OpenApiResponse(description="Deleted; body carries last_message (or null)"),
            403: OpenApiResponse(description="Not the sender"),
            404: OpenApiResponse(description="Message not found"),
        },
    )
    def delete(self, request, pk):
        result = MessageService.delete_message(message_id=pk, user=request.user)
        if not result.success:
            return service_error_response(result)

        return Response(
            {
                "message": "Message deleted successfully",
                "last_message": _message_data(request, result.data),
            }
        )


class MessageOlderView(MessagePageMixin, APIView):
    """
    GET: Messages of the same thread older than the given message.

    URL: /api/v1/messages/{id}/older/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Load older messages",
        tags=["Chat - Messages"],
        responses={
            200: MessageSerializer(many=True),
            403: OpenApiResponse(description="Not part of the thread"),
            404: OpenApiResponse(description="Message not found"),
        },
    )
    def get(self, request, pk):
        result = MessageService.get_older(request.user, pk)
        if not result.success:
            return service_error_response(result)

        return Response(self.paginate_messages(request, result.data))


class UserThreadView(MessagePageMixin, APIView):
    """
    GET: Direct thread with a user: {selected_conversation, messages}.

    URL: /api/v1/messages/user/{user_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Direct thread",
        tags=["Chat - Messages"],
        responses={
            200: OpenApiResponse(description="Selected conversation and a page of messages"),
            404: OpenApiResponse(description="User not found"),
        },
    )
    def get(self, request, user_id):
        result = MessageService.get_thread(request.user, DirectTarget(user_id=user_id))
        if not result.success:
            return service_error_response(result)

        other = User.objects.get(pk=user_id)
        entry = ConversationListService.entry_for_user(request.user, other)
        return Response(
            {
                "selected_conversation": ConversationEntrySerializer(
                    entry, context={"request": request}
                ).data,
                "messages": self.paginate_messages(request, result.data),
            }
        )


class GroupThreadView(MessagePageMixin, APIView):
    """
    GET: Group thread: {selected_conversation, messages}. Members only.

    URL: /api/v1/messages/group/{group_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Group thread",
        tags=["Chat - Messages"],
        responses={
            200: OpenApiResponse(description="Selected conversation and a page of messages"),
            403: OpenApiResponse(description="Not a member"),
            404: OpenApiResponse(description="Group not found"),
        },
    )
    def get(self, request, group_id):
        result = MessageService.get_thread(request.user, GroupTarget(group_id=group_id))
        if not result.success:
            return service_error_response(result)

        entry = ConversationListService.entry_for_group(Group.objects.get(pk=group_id))
        return Response(
            {
                "selected_conversation": ConversationEntrySerializer(
                    entry, context={"request": request}
                ).data,
                "messages": self.paginate_messages(request, result.data),
            }
        )


class ThreadReadView(APIView):
    """
    POST: Mark a direct or group thread read for the caller.

    URLs:
        /api/v1/messages/user/{user_id}/read/
        /api/v1/messages/group/{group_id}/read/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Mark thread read",
        tags=["Chat - Messages"],
        request=None,
        responses={
            200: OpenApiResponse(description="Thread marked read"),
            403: OpenApiResponse(description="Not a member"),
            404: OpenApiResponse(description="User or group not found"),
        },
    )
    def post(self, request, user_id=None, group_id=None):
        if group_id is not None:
            target = GroupTarget(group_id=group_id)
        else:
            target = DirectTarget(user_id=user_id)

        result = MessageService.mark_as_read(request.user, target)
        if not result.success:
            return service_error_response(result)

        return Response({"message": "Marked as read", "updated": result.data})


# =============================================================================
# Groups
# =============================================================================


class GroupListCreateView(APIView):
    """
    GET: Groups the caller belongs to
    POST: Create a group (the caller becomes owner and member)

    URL: /api/v1/groups/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List my groups",
        tags=["Chat - Groups"],
        responses={200: GroupSerializer(many=True)},
    )
    def get(self, request):
        groups = GroupService.list_for_user(request.user)
        return Response(GroupSerializer(groups, many=True, context={"request": request}).data)

    @extend_schema(
        summary="Create group",
        tags=["Chat - Groups"],
        request=GroupCreateSerializer,
        responses={
            201: GroupSerializer,
            400: OpenApiResponse(description="Validation error"),
        },
    )
    def post(self, request):
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = GroupService.create_group(
            owner=request.user,
            name=serializer.validated_data["name"],
            description=serializer.validated_data.get("description", ""),
            member_ids=serializer.validated_data["user_ids"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(
            GroupSerializer(result.data, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )


class GroupDetailView(APIView):
    """
    GET: Group details (members only)
    PUT: Update name/description/members (owner or admin)
    DELETE: Delete the group and all its messages (owner or admin)

    URL: /api/v1/groups/{id}/
    """

    permission_classes = [IsAuthenticated]

    def get_group(self, pk) -> ServiceResult[Group]:
        group = Group.objects.select_related("owner").filter(pk=pk).first()
        if group is None:
            return ServiceResult.failure("Group not found", error_code="NOT_FOUND")
        return ServiceResult.success(group)

    @extend_schema(
        summary="Get group",
        tags=["Chat - Groups"],
        responses={
            200: GroupSerializer,
            403: OpenApiResponse(description="Not a member"),
            404: OpenApiResponse(description="Group not found"),
        },
    )
    def get(self, request, pk):
        result = self.get_group(pk)
        if not result.success:
            return service_error_response(result)
        if not result.data.has_member(request.user):
            return service_error_response(
                ServiceResult.failure(
                    "You are not a member of this group", error_code="NOT_MEMBER"
                )
            )

        return Response(GroupSerializer(result.data, context={"request": request}).data)

    @extend_schema(
        summary="Update group",
        tags=["Chat - Groups"],
        request=GroupUpdateSerializer,
        responses={
            200: GroupSerializer,
            400: OpenApiResponse(description="Validation error"),
            403: OpenApiResponse(description="Not the owner or an admin"),
            404: OpenApiResponse(description="Group not found"),
        },
    )
    def put(self, request, pk):
        result = self.get_group(pk)
        if not result.success:
            return service_error_response(result)

        serializer = GroupUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = GroupService.update_group(
            result.data,
            request.user,
            name=data.get("name"),
            description=data.get("description"),
            member_ids=data.get("user_ids"),
        )
        if not result.success:
            return service_error_response(result)

        return Response(GroupSerializer(result.data, context={"request": request}).data)

    @extend_schema(
        summary="Delete group",
        tags=["Chat - Groups"],
        responses={
            200: OpenApiResponse(description="Group deleted"),
            403: OpenApiResponse(description="Not the owner or an admin"),
            404: OpenApiResponse(description="Group not found"),
        },
    )
    def delete(self, request, pk):
        result = self.get_group(pk)
        if not result.success:
            return service_error_response(result)

        result = GroupService.delete_group(result.data, request.user)
        if not result.success:
            return service_error_response(result)

        return Response({"message": "Group deleted successfully"})
