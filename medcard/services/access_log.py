"""
Emergency access log recorder.

Every disclosure through the public emergency view or a share token
appends exactly one entry.  The write is synchronous and fail-closed: if
it cannot be persisted the caller gets a server error instead of the
data.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from django.utils import timezone

from medcard.exceptions import AccessLogWriteError
from medcard.services.stores import SharingStore

logger = logging.getLogger(__name__)

ACCESS_METHODS = ('qr', 'nfc', 'share_token', 'link', 'api')


@dataclass(frozen=True)
class RequestContext:
    """Requester metadata captured for the audit trail."""
    ip: Optional[str] = None
    user_agent: str = ''

    @classmethod
    def from_request(cls, request) -> 'RequestContext':
        meta = getattr(request, 'META', {}) or {}
        return cls(
            ip=meta.get('REMOTE_ADDR') or None,
            user_agent=(meta.get('HTTP_USER_AGENT') or '')[:512],
        )


def record_access(
    store: SharingStore,
    *,
    user_id: Optional[int],
    method: str,
    context: RequestContext,
    data_returned: Iterable[str],
    share_token: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    if method not in ACCESS_METHODS:
        raise ValueError(f'unknown access method: {method}')
    try:
        return store.create_access_log(
            user_id=user_id,
            accessed_at=now or timezone.now(),
            method=method,
            ip=context.ip,
            device_info=context.user_agent,
            data_returned=list(data_returned),
            share_token_used=share_token,
        )
    except Exception as exc:
        logger.error('access log write failed (method=%s, subject=%s): %r', method, user_id, exc)
        raise AccessLogWriteError() from exc
