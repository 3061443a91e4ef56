"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Group management (members inline)
- Conversation inspection
- Message moderation (attachments inline)

Messages are deleted through MessageService so the thread pointer stays valid.
"""

from django.contrib import admin, messages

from chat.models import Conversation, Group, GroupMembership, Message, MessageAttachment
from chat.services import MessageService


class GroupMembershipInline(admin.TabularInline):
    """Inline display of members in group admin."""

    model = GroupMembership
    extra = 0
    readonly_fields = ["created_at", "last_read_at"]
    raw_id_fields = ["user"]


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for Group model."""

    list_display = ["id", "name", "owner", "last_message", "created_at"]
    search_fields = ["name", "owner__email"]
    raw_id_fields = ["owner", "last_message"]
    readonly_fields = ["last_message", "created_at", "updated_at"]
    inlines = [GroupMembershipInline]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model (read-only pointers)."""

    list_display = ["id", "user_lower", "user_higher", "last_message", "updated_at"]
    raw_id_fields = ["user_lower", "user_higher", "last_message"]
    readonly_fields = ["last_message", "created_at", "updated_at"]


class MessageAttachmentInline(admin.TabularInline):
    """Inline display of attachments in message admin."""

    model = MessageAttachment
    extra = 0
    readonly_fields = ["name", "mime", "size", "file", "created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "sender", "receiver", "group", "short_body", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["body", "sender__email"]
    raw_id_fields = ["sender", "receiver", "group", "reply_to"]
    readonly_fields = ["created_at", "updated_at", "read_at"]
    inlines = [MessageAttachmentInline]
    actions = ["delete_through_service"]

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Body")
    def short_body(self, obj):
        if not obj.body:
            return ""
        return obj.body[:50] + ("..." if len(obj.body) > 50 else "")

    @admin.action(description="Delete selected messages (as their sender)")
    def delete_through_service(self, request, queryset):
        deleted = 0
        for message in queryset.select_related("sender"):
            result = MessageService.delete_message(message.id, message.sender)
            if result.success:
                deleted += 1
        self.message_user(request, f"Deleted {deleted} message(s)", messages.SUCCESS)
