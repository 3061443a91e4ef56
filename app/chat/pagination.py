"""
Pagination classes for chat API.

Cursor-based pagination advantages:
- Stable results while new messages arrive at the head of a thread
- No offset calculation needed

Design Decisions:
    - Messages ordered newest-first, matching how a chat screen loads
    - Cursors encode (created_at, id) so equal timestamps stay ordered
"""

from rest_framework.pagination import CursorPagination

from chat.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for thread reads.

    Default: 10 messages per page
    Maximum: 100 messages per page

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = MESSAGE_CONFIG.PAGE_SIZE
    max_page_size = 100
    page_size_query_param = "page_size"
    ordering = ("-created_at", "-id")
    cursor_query_param = "cursor"
