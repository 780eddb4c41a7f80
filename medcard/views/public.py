"""
Unauthenticated disclosure endpoints.

``/e/<public_id>`` serves the redacted emergency view behind a printed QR
code; ``/share/<token>`` redeems a share token.  Both bodies are returned
as-is (no ``ok`` envelope) and every successful call leaves exactly one
emergency access log entry.
"""
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from ..services.access_log import RequestContext
from ..services.emergency import resolve_emergency_view
from ..services.sharing import redeem_share_token
from ..services.stores import get_store


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_emergency(request, public_id: str):
    view = resolve_emergency_view(get_store(), public_id, RequestContext.from_request(request))
    return Response(view)

public_emergency.cls.throttle_scope = 'emergency'


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_share(request, token: str):
    payload = redeem_share_token(get_store(), token, RequestContext.from_request(request))
    return Response(payload)

public_share.cls.throttle_scope = 'share'
