"""
Authentication views.

Registration and e-mail/password login issue a JWT pair (simplejwt)
together with a legacy DRF token for clients that still send
``Authorization: Token <key>``.  Refresh tokens are revoked through the
simplejwt blacklist on logout.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from medcard.models import User
from medcard.serializers.auth import LoginSerializer, RefreshSerializer, RegisterSerializer
from medcard.services.audit import log_action
from medcard.services.serialization import user_dict

logger = logging.getLogger(__name__)


def _token_payload(user: User) -> dict:
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'user': user_dict(user),
    }


def _conflict(message: str) -> Response:
    return Response({'ok': False, 'error': {'code': 'conflict', 'message': message}}, status=status.HTTP_409_CONFLICT)


# ---------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if User.objects.filter(email=vd['email']).exists():
        return _conflict('Email already registered.')
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=vd['email'],
                email=vd['email'],
                password=vd['password'],
                full_name=vd['full_name'],
                phone=vd.get('phone', ''),
                role=vd['role'],
            )
    except IntegrityError:
        return _conflict('Email already registered.')

    log_action(user=user, action='register', object_type='user', object_id=user.id,
               ip=request.META.get('REMOTE_ADDR'))
    logger.info('registered user %s as %s', user.id, user.role)
    return Response(_token_payload(user), status=status.HTTP_201_CREATED)

register_view.cls.throttle_scope = 'register'


# ---------------------------------------------------------------------
# E-mail / password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=email, password=s.validated_data['password'])
    if not user:
        # only the attempted e-mail is audited, never the password
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email}, ip=ip)
        raise AuthenticationFailed('Invalid credentials.')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok'}, ip=ip)
    return Response(_token_payload(user), status=200)

# ScopedRateThrottle reads throttle_scope from the wrapped view class
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': user_dict(request.user)})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or all of the caller's tokens."""
    s = RefreshSerializer(data=request.data)
    count = 0
    if s.is_valid():
        try:
            RefreshToken(s.validated_data['refresh']).blacklist()
            count = 1
        except TokenError as e:
            logger.info('logout with unusable refresh token for user %s: %s', request.user.id, e)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               ip=request.META.get('REMOTE_ADDR'))
    return Response({'ok': True, 'blacklisted': count})
