"""
Health card endpoints for the signed-in user.

The card is the user's :class:`~medcard.models.HealthProfile`; its
public emergency id is what the QR code on the physical card encodes.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import HealthProfile
from ..serializers.profile import HealthProfileUpsertSerializer
from ..services.audit import log_action
from ..services.profiles import get_public_id, upsert_health_profile
from ..services.qr import emergency_url, qr_data_url
from ..services.serialization import profile_dict, user_dict


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_card(request):
    profile = HealthProfile.objects.filter(user=request.user).first()
    return Response({
        'ok': True,
        'user': user_dict(request.user),
        'profile': profile_dict(profile) if profile else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upsert_health(request):
    """Create or update the caller's profile.

    Returns 201 when the profile is created, 200 on update.  Pass
    ``reset_public_id: true`` to invalidate the printed QR code and get
    a new public id.
    """
    s = HealthProfileUpsertSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    reset = data.pop('reset_public_id', False)

    profile, created = upsert_health_profile(request.user, data, reset_public_id=reset)
    if reset and not created:
        log_action(user=request.user, action='public_id_reset', object_type='health_profile',
                   object_id=profile.id, ip=request.META.get('REMOTE_ADDR'))
    return Response(
        {'ok': True, 'profile': profile_dict(profile)},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_public_id(request):
    public_id = get_public_id(request.user)
    if not public_id:
        raise NotFound('Profile not found.')
    return Response({'ok': True, 'public_id': public_id, 'url': emergency_url(public_id)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_qr(request):
    public_id = get_public_id(request.user)
    if not public_id:
        raise NotFound('Profile not found.')
    url = emergency_url(public_id)
    return Response({'ok': True, 'public_id': public_id, 'url': url, 'qr': qr_data_url(url)})
