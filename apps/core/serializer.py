from typing import Any, Dict, Type

from django.core.paginator import Paginator
from rest_framework import serializers


class PaginationQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1, min_value=1, help_text="Page number (1-based)")
    page_size = serializers.IntegerField(
        required=False, default=10, min_value=1, max_value=100, help_text="Number of items per page"
    )


def paginate(queryset, params: Dict[str, Any], item_serializer: Type[serializers.Serializer]) -> Dict[str, Any]:
    """Slice `queryset` by validated page params into the `{count, results}` envelope."""
    paginator = Paginator(queryset, params.get("page_size", 10))
    page_obj = paginator.get_page(params.get("page", 1))
    return {
        "count": paginator.count,
        "results": item_serializer(page_obj.object_list, many=True).data,
    }
