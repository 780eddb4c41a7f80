import html

import bleach
from rest_framework import serializers


def clean_text(v, strip=True):
    """Plain text with all markup removed; entities bleach escapes are decoded again."""
    v = v or ''
    if strip:
        v = v.strip()
    return html.unescape(bleach.clean(v, tags=set(), attributes={}, strip=True))


class PageQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=100)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200, default=50)
