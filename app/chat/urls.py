"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                      GET

    Messages:
        /messages/                           POST
        /messages/{id}/                      DELETE
        /messages/{id}/older/                GET
        /messages/user/{user_id}/            GET
        /messages/user/{user_id}/read/       POST
        /messages/group/{group_id}/          GET
        /messages/group/{group_id}/read/     POST

    Groups:
        /groups/                             GET, POST
        /groups/{id}/                        GET, PUT, DELETE

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import path

from chat.views import (
    ConversationListView,
    GroupDetailView,
    GroupListCreateView,
    GroupThreadView,
    MessageCreateView,
    MessageDetailView,
    MessageOlderView,
    ThreadReadView,
    UserThreadView,
)

app_name = "chat"

urlpatterns = [
    path("conversations/", ConversationListView.as_view(), name="conversation-list"),
    path("messages/", MessageCreateView.as_view(), name="message-create"),
    path("messages/<int:pk>/", MessageDetailView.as_view(), name="message-detail"),
    path("messages/<int:pk>/older/", MessageOlderView.as_view(), name="message-older"),
    path(
        "messages/user/<int:user_id>/",
        UserThreadView.as_view(),
        name="user-thread",
    ),
    path(
        "messages/user/<int:user_id>/read/",
        ThreadReadView.as_view(),
        name="user-thread-read",
    ),
    path(
        "messages/group/<int:group_id>/",
        GroupThreadView.as_view(),
        name="group-thread",
    ),
    path(
        "messages/group/<int:group_id>/read/",
        ThreadReadView.as_view(),
        name="group-thread-read",
    ),
    path("groups/", GroupListCreateView.as_view(), name="group-list"),
    path("groups/<int:pk>/", GroupDetailView.as_view(), name="group-detail"),
]
