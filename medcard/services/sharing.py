"""
Share token issuance and redemption.

A share token grants unauthenticated access either to a whole profile
(``user_id``) or to an explicit list of medical records
(``record_ids``).  Tokens may expire and are single use by default;
consumption of a single-use token is a conditional update at the store,
so two concurrent redemptions can never both succeed.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Iterable, Optional

from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from medcard.exceptions import Gone, NothingToShare
from medcard.permissions import is_privileged
from medcard.services.access_log import RequestContext, record_access
from medcard.services.emergency import NOT_FOUND_MESSAGE
from medcard.services.stores import DuplicateTokenError, ShareGrant, SharingStore

logger = logging.getLogger(__name__)

# 32 random bytes -> 43 URL-safe characters
TOKEN_BYTES = 32
TOKEN_ATTEMPTS = 5

GONE_MESSAGE = 'Token is no longer valid.'


def _normalize_record_ids(record_ids: Optional[Iterable]) -> list[str]:
    return list(dict.fromkeys(str(r) for r in (record_ids or []) if str(r).strip()))


def issue_share_token(
    store: SharingStore,
    *,
    created_by: Optional[int],
    record_ids: Optional[Iterable] = None,
    user_id: Optional[int] = None,
    expires_at: Optional[datetime] = None,
    single_use: bool = True,
) -> ShareGrant:
    record_ids = _normalize_record_ids(record_ids)
    if record_ids and user_id is not None:
        raise ValidationError('Share either record_ids or user_id, not both.')
    if not record_ids and user_id is None:
        raise ValidationError('Share scope is required: record_ids or user_id.')

    for _ in range(TOKEN_ATTEMPTS):
        token = secrets.token_urlsafe(TOKEN_BYTES)
        if store.share_token_exists(token):
            continue
        grant = ShareGrant(
            token=token,
            user_id=user_id,
            record_ids=record_ids,
            created_by=created_by,
            expires_at=expires_at,
            single_use=single_use,
        )
        try:
            return store.create_share_token(grant)
        except DuplicateTokenError:
            logger.warning('share token collision, retrying')
    raise RuntimeError('could not allocate a unique share token')


def check_share_scope(
    store: SharingStore,
    actor,
    *,
    record_ids: Optional[Iterable] = None,
    user_id: Optional[int] = None,
) -> None:
    """Make sure ``actor`` may share the requested scope.

    Patients and caregivers may only share their own profile or records
    they own; providers and admins may share any existing scope.
    """
    record_ids = _normalize_record_ids(record_ids)
    if user_id is not None:
        if store.find_user(user_id) is None:
            raise ValidationError({'user_id': ['Unknown user.']})
        if not is_privileged(actor) and user_id != actor.id:
            raise PermissionDenied('Not allowed to share another user\'s profile.')
    if record_ids:
        records = store.find_records_by_ids(record_ids)
        found = {r['id'] for r in records}
        missing = [r for r in record_ids if r not in found]
        if missing:
            raise ValidationError({'record_ids': [f'Unknown record ids: {", ".join(missing)}']})
        if not is_privileged(actor) and any(r['user_id'] != actor.id for r in records):
            raise PermissionDenied('Not allowed to share records of another user.')


def _build_payload(store: SharingStore, grant: ShareGrant) -> tuple[dict, Optional[int]]:
    if grant.record_ids:
        records = store.find_records_by_ids(grant.record_ids)
        subject = records[0]['user_id'] if records else None
        return {'records': records}, subject
    if grant.user_id is not None:
        user = store.find_user(grant.user_id)
        if user is None:
            logger.info('share token %s… points at a removed user', grant.token[:6])
            raise NotFound(NOT_FOUND_MESSAGE)
        payload = {
            'user': user,
            'profile': store.find_profile_by_user(grant.user_id),
            'records': store.find_records_by_owner(grant.user_id),
        }
        return payload, grant.user_id
    raise NothingToShare()


def redeem_share_token(
    store: SharingStore,
    token: str,
    context: RequestContext,
    *,
    now: Optional[datetime] = None,
) -> dict:
    grant = store.find_share_token(token) if token else None
    if grant is None:
        raise NotFound(NOT_FOUND_MESSAGE)

    now = now or timezone.now()
    if grant.expires_at is not None and now > grant.expires_at:
        logger.info('share token %s… rejected: expired at %s', token[:6], grant.expires_at.isoformat())
        raise Gone(GONE_MESSAGE)
    if grant.single_use and grant.used:
        logger.info('share token %s… rejected: already used', token[:6])
        raise Gone(GONE_MESSAGE)

    with store.atomic():
        payload, subject = _build_payload(store, grant)
        if grant.single_use and not store.consume_share_token(grant.token):
            logger.info('share token %s… rejected: consumed by a concurrent request', token[:6])
            raise Gone(GONE_MESSAGE)
        record_access(
            store,
            user_id=subject,
            method='share_token',
            context=context,
            data_returned=list(payload.keys()),
            share_token=grant.token,
            now=now,
        )
    return payload
