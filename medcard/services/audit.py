import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from medcard.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[Any] = None, detail: Optional[Dict[str, Any]] = None,
               ip: Optional[str] = None) -> Optional[AuditEvent]:
    """Best-effort operational audit.

    A database failure is logged and ``None`` returned; the savepoint keeps the
    caller's transaction usable. Anything else is a bug and propagates.
    """
    try:
        with transaction.atomic():
            return AuditEvent.objects.create(
                user=user if getattr(user, 'pk', None) else None,
                action=action,
                object_type=object_type,
                object_id=str(object_id) if object_id is not None else None,
                detail=detail or {},
                ip=ip,
            )
    except DatabaseError:
        logger.warning('audit event %s could not be stored', action, exc_info=True)
        return None
