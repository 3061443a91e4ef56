"""
Chat application configuration.

This app provides the chat system with:
- Direct (1:1) threads and group threads
- Maintained last-message pointers on conversations and groups
- The sidebar conversation list
- Realtime broadcast of new messages
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
