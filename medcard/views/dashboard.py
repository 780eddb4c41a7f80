"""
Administrative dashboard endpoints.

Only users with the admin role may access these.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdminRole
from ..serializers.common import PageQuerySerializer
from ..services.dashboard import admin_summary, search_users
from ..services.stores import get_store


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def summary(request):
    """Counts of users, profiles and records plus the newest access log entries."""
    return Response({'ok': True, **admin_summary(get_store())})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, total = search_users(q=(vd.get('q') or '').strip() or None, page=vd['page'], limit=vd['limit'])
    return Response({'ok': True, 'meta': {'page': vd['page'], 'limit': vd['limit'], 'total': total}, 'data': items})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def access_logs(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit = q.validated_data['page'], q.validated_data['limit']
    items, total = get_store().list_access_logs(offset=(page - 1) * limit, limit=limit)
    return Response({'ok': True, 'meta': {'page': page, 'limit': limit, 'total': total}, 'data': items})
