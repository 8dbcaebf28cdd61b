"""
Pagination for chat API.

Message and thread listings are paginated by the service layer with an
opaque keyset cursor (chat.types.Cursor). This module only reads the
request parameters and shapes the response.

Keyset pagination advantages:
- Stable results during concurrent inserts
- No offset calculation needed

Design Decisions:
    - Messages newest-first, cursor encodes (created_at, id)
    - Threads by most recent reply, cursor encodes (last_reply_at, id)
    - Page sizes balanced for mobile performance
"""

from rest_framework.response import Response

from chat.constants import MESSAGE_CONFIG


class MessageKeysetPagination:
    """
    Request/response glue for MessagePage listings.

    Default: 50 messages per page
    Maximum: 100 messages per page

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"
    cursor_query_param = "cursor"

    def get_page_size(self, request) -> int:
        try:
            requested = int(request.query_params.get(self.page_size_query_param, 0))
        except (TypeError, ValueError):
            requested = 0
        if requested <= 0:
            return self.page_size
        return min(requested, self.max_page_size)

    def get_cursor(self, request) -> str | None:
        return request.query_params.get(self.cursor_query_param) or None

    def get_paginated_response(self, data, page) -> Response:
        return Response(
            {
                "results": data,
                "next_cursor": page.next_cursor,
                "has_more": page.has_more,
            }
        )
