"""
Plain-dict renderings of the ORM models.

Both sharing stores hand these dicts to the emergency/share services so
that the services never touch model instances directly.  Values keep
their native types (``date``/``datetime``); DRF's JSON encoder renders
them on the way out.
"""
from __future__ import annotations

from typing import Any

from medcard.models import EmergencyAccessLog, HealthProfile, MedicalRecord, ShareToken, User

PROFILE_FIELDS = (
    'dob', 'gender', 'blood_group', 'weight_kg', 'height_cm',
    'allergies', 'chronic_conditions', 'medications', 'emergency_contacts',
    'primary_physician', 'public_emergency_id', 'public_emergency_summary',
)

RECORD_FIELDS = (
    'type', 'title', 'description', 'date_of_visit', 'files', 'tags',
    'verified_by_provider', 'visibility', 'deleted',
)


def user_dict(user: User) -> dict[str, Any]:
    """Public-safe user fields (never the password hash)."""
    return {
        'id': user.id,
        'full_name': user.display_name,
        'email': user.email,
        'phone': user.phone,
        'role': user.role,
        'created_at': user.date_joined,
    }


def profile_dict(profile: HealthProfile) -> dict[str, Any]:
    data: dict[str, Any] = {'id': profile.id, 'user_id': profile.user_id}
    for field in PROFILE_FIELDS:
        data[field] = getattr(profile, field)
    data['created_at'] = profile.created_at
    data['updated_at'] = profile.updated_at
    return data


def record_dict(record: MedicalRecord) -> dict[str, Any]:
    data: dict[str, Any] = {
        'id': record.id,
        'user_id': record.user_id,
        'uploaded_by': record.uploaded_by_id,
    }
    for field in RECORD_FIELDS:
        data[field] = getattr(record, field)
    data['created_at'] = record.created_at
    data['updated_at'] = record.updated_at
    return data


def access_log_dict(log: EmergencyAccessLog) -> dict[str, Any]:
    return {
        'id': log.id,
        'user_id': log.user_id,
        'accessed_at': log.accessed_at,
        'method': log.method,
        'ip': log.ip,
        'device_info': log.device_info,
        'data_returned': list(log.data_returned or []),
        'share_token_used': log.share_token_used,
    }


def share_token_fields(token: ShareToken) -> dict[str, Any]:
    return {
        'token': token.token,
        'user_id': token.user_id,
        'record_ids': [str(r) for r in (token.record_ids or [])],
        'created_by': token.created_by,
        'expires_at': token.expires_at,
        'single_use': token.single_use,
        'used': token.used,
        'created_at': token.created_at,
    }
