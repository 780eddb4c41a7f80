"""
Redaction policy for the public emergency view.

Only a fixed subset of the health profile ever leaves through the QR
code path.  Weight, height, medications and physician details are never
part of it.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

PUBLIC_VIEW_FIELDS = (
    'public_id',
    'name',
    'age',
    'blood_group',
    'allergies',
    'chronic_conditions',
    'emergency_contacts',
    'note',
)

CONTACT_FIELDS = ('name', 'relation', 'phone', 'notes')


def derive_age(dob: Optional[date], today: date) -> Optional[int]:
    """``floor(elapsed_days / 365.25)`` between ``dob`` and ``today``."""
    if dob is None:
        return None
    if isinstance(dob, datetime):
        dob = dob.date()
    if isinstance(dob, str):
        dob = date.fromisoformat(dob[:10])
    # 1461 days = 4 * 365.25, kept integral
    return max((today - dob).days * 4 // 1461, 0)


def _contact(contact: Any) -> dict:
    if not isinstance(contact, dict):
        return {}
    return {k: contact.get(k) for k in CONTACT_FIELDS if contact.get(k) is not None}


def build_public_view(public_id: str, profile: dict, owner: dict, *, today: date) -> dict:
    """Return exactly :data:`PUBLIC_VIEW_FIELDS` for ``profile``."""
    view = {
        'public_id': public_id,
        'name': owner.get('full_name'),
        'age': derive_age(profile.get('dob'), today),
        'blood_group': profile.get('blood_group') or None,
        'allergies': list(profile.get('allergies') or []),
        'chronic_conditions': list(profile.get('chronic_conditions') or []),
        'emergency_contacts': [_contact(c) for c in (profile.get('emergency_contacts') or [])],
        'note': profile.get('public_emergency_summary') or None,
    }
    return {k: view[k] for k in PUBLIC_VIEW_FIELDS}
