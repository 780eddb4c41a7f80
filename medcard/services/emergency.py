"""
Public emergency resolver.

Resolves the id embedded in a user's QR code to the redacted public view
and writes the matching access log entry.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.utils import timezone
from rest_framework.exceptions import NotFound

from medcard.services.access_log import RequestContext, record_access
from medcard.services.redaction import build_public_view
from medcard.services.stores import SharingStore

logger = logging.getLogger(__name__)

# Shared with the share token path so unknown ids and unknown tokens look alike.
NOT_FOUND_MESSAGE = 'Not found.'


def resolve_emergency_view(
    store: SharingStore,
    public_id: str,
    context: RequestContext,
    *,
    now: Optional[datetime] = None,
) -> dict:
    if not public_id:
        raise NotFound(NOT_FOUND_MESSAGE)
    found = store.find_profile_by_public_id(public_id)
    if found is None:
        raise NotFound(NOT_FOUND_MESSAGE)
    profile, owner = found

    now = now or timezone.now()
    today = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    view = build_public_view(public_id, profile, owner, today=today)
    with store.atomic():
        record_access(
            store,
            user_id=owner['id'],
            method='qr',
            context=context,
            data_returned=list(view.keys()),
            now=now,
        )
    logger.info('emergency view disclosed for user %s', owner['id'])
    return view
