"""
Owner-side share token management.
"""
from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.sharing import ShareTokenIssueSerializer
from ..services.audit import log_action
from ..services.sharing import check_share_scope, issue_share_token
from ..services.stores import ShareGrant, get_store


def share_url(token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/share/{token}"


def _grant_dict(grant: ShareGrant) -> dict:
    data = grant.to_dict()
    data['url'] = share_url(grant.token)
    return data


def _resolve_expiry(vd: dict):
    if vd.get('expires_at'):
        return vd['expires_at']
    minutes = vd.get('expires_in_minutes') or settings.SHARE_TOKEN_DEFAULT_TTL_MINUTES
    return timezone.now() + timedelta(minutes=minutes) if minutes else None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def share_tokens(request):
    store = get_store()
    if request.method == 'GET':
        grants = store.list_share_tokens(request.user.id)
        return Response({'ok': True, 'data': [_grant_dict(g) for g in grants]})

    s = ShareTokenIssueSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    record_ids = vd.get('record_ids') or None
    user_id = vd.get('user_id')

    check_share_scope(store, request.user, record_ids=record_ids, user_id=user_id)
    grant = issue_share_token(
        store,
        created_by=request.user.id,
        record_ids=record_ids,
        user_id=user_id,
        expires_at=_resolve_expiry(vd),
        single_use=vd['single_use'],
    )
    log_action(user=request.user, action='share_token_issue', object_type='share_token',
               object_id=grant.token[:8],
               detail={'scope': 'user' if user_id is not None else 'records', 'single_use': grant.single_use},
               ip=request.META.get('REMOTE_ADDR'))
    return Response({'ok': True, **_grant_dict(grant)}, status=status.HTTP_201_CREATED)
