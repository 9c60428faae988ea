import math

from django.core.paginator import Page
from rest_framework.exceptions import NotFound
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PageLimitPagination(PageNumberPagination):
    """Paginates with ``page``/``limit`` and answers with the dashboard's list envelope.

    A page past the end yields an empty ``data`` list instead of a 404.
    """

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 200

    def paginate_queryset(self, queryset, request, view=None):
        try:
            return super().paginate_queryset(queryset, request, view=view)
        except NotFound:
            number = self._requested_page_number(request)
            if number is None:
                raise
            paginator = self.django_paginator_class(queryset, self.get_page_size(request))
            self.page = Page([], number, paginator)
            self.request = request
            return []

    def _requested_page_number(self, request):
        try:
            number = int(request.query_params.get(self.page_query_param, 1))
        except (TypeError, ValueError):
            return None
        return number if number > 1 else None

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response(
            {
                "page": self.page.number,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if limit else 0,
                "data": data,
            }
        )
