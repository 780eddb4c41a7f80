"""
Health profile ("card") operations for the owning user.
"""
from __future__ import annotations

import logging
import secrets
from typing import Any

from django.db import IntegrityError, transaction

from medcard.models import HealthProfile, User

logger = logging.getLogger(__name__)

# Whitelist of fields the owner may write
EDITABLE_FIELDS = (
    'dob', 'gender', 'blood_group', 'weight_kg', 'height_cm',
    'allergies', 'chronic_conditions', 'medications', 'emergency_contacts',
    'primary_physician', 'public_emergency_summary',
)

PUBLIC_ID_BYTES = 6  # 8 URL-safe characters
PUBLIC_ID_ATTEMPTS = 10


def generate_public_id() -> str:
    return secrets.token_urlsafe(PUBLIC_ID_BYTES)


def _unused_public_id() -> str:
    for _ in range(PUBLIC_ID_ATTEMPTS):
        candidate = generate_public_id()
        if not HealthProfile.objects.filter(public_emergency_id=candidate).exists():
            return candidate
    raise RuntimeError('could not allocate a unique public emergency id')


def _save_with_fresh_public_id(profile: HealthProfile) -> None:
    """Assign a new public id and save, retrying if another writer took it first."""
    for attempt in range(PUBLIC_ID_ATTEMPTS):
        profile.public_emergency_id = _unused_public_id()
        try:
            with transaction.atomic():
                profile.save()
            return
        except IntegrityError:
            if HealthProfile.objects.filter(public_emergency_id=profile.public_emergency_id).exists():
                logger.warning('public emergency id collision, retrying (attempt %d)', attempt + 1)
                continue
            raise
    raise RuntimeError('could not allocate a unique public emergency id')


def upsert_health_profile(user: User, data: dict[str, Any], *, reset_public_id: bool = False) -> tuple[HealthProfile, bool]:
    """Create or update ``user``'s profile from whitelisted ``data``.

    A public emergency id is generated on creation.  ``reset_public_id``
    replaces it; the previous value is never handed out again.
    Returns ``(profile, created)``.
    """
    profile = HealthProfile.objects.filter(user=user).first()
    created = profile is None
    if created:
        profile = HealthProfile(user=user)
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(profile, field, data[field])

    if created or reset_public_id or not profile.public_emergency_id:
        _save_with_fresh_public_id(profile)
    else:
        profile.save()
    return profile, created


def get_public_id(user: User) -> str | None:
    profile = HealthProfile.objects.filter(user=user).only('public_emergency_id').first()
    return profile.public_emergency_id if profile else None
