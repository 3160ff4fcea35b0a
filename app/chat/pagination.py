"""
Pagination classes for chat API.

Both lists use page numbers (?page=N):
- ChatPagination: Chat lists, most recent activity first
- MessagePagination: Message history, page 1 holds the newest messages

Design Decisions:
    - Message querysets come in newest-first so page 1 is the latest
      history; each page is then reversed so it reads oldest to newest
    - Page sizes come from settings.CHAT
"""

from rest_framework.pagination import PageNumberPagination

from chat.constants import PAGINATION_CONFIG


class ChatPagination(PageNumberPagination):
    """
    Page number pagination for chat lists.

    Default: 20 chats per page
    Maximum: 100 chats per page
    """

    page_size = PAGINATION_CONFIG.CHATS_PAGE_SIZE
    max_page_size = PAGINATION_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"


class MessagePagination(PageNumberPagination):
    """
    Page number pagination for message history.

    Expects a newest-first queryset. Page 1 is the most recent
    messages; within a page messages are oldest first.

    Default: 50 messages per page
    Maximum: 100 messages per page
    """

    page_size = PAGINATION_CONFIG.MESSAGES_PAGE_SIZE
    max_page_size = PAGINATION_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"

    def paginate_queryset(self, queryset, request, view=None):
        page = super().paginate_queryset(queryset, request, view=view)
        if page is None:
            return None
        return list(reversed(page))
