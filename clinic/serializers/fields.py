import bleach
from rest_framework import serializers


class CleanText(serializers.CharField):
    """CharField that strips surrounding whitespace and any markup."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        return bleach.clean(value.strip(), tags=[], strip=True)


def optional_text(**kwargs):
    kwargs.setdefault('default', '')
    return CleanText(required=False, allow_blank=True, **kwargs)


class ListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=100)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)
    patientId = serializers.UUIDField(required=False)


def paginate(qs, params: dict):
    page = params.get('page') or 1
    page_size = params.get('pageSize') or 0
    if page_size:
        start = (page - 1) * page_size
        return qs[start:start + page_size]
    return qs
