"""
Medical record operations with role based access rules.

Patients and caregivers act on their own records.  Providers and admins
may create and read records for any patient; only the owner or an admin
may delete.  Deletion is soft: the row stays with ``deleted=True`` and is
invisible to every read path.
"""
from __future__ import annotations

from typing import Any, Optional

from django.shortcuts import get_object_or_404
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from medcard.models import MedicalRecord, User
from medcard.permissions import is_admin, is_privileged

UPDATABLE_FIELDS = ('type', 'title', 'description', 'date_of_visit', 'files', 'tags', 'visibility')


def create_record(actor: User, data: dict[str, Any]) -> MedicalRecord:
    owner_id = data.pop('user_id', None) or actor.id
    if owner_id != actor.id:
        if not is_privileged(actor):
            raise PermissionDenied('Not allowed to create records for another user.')
        if not User.objects.filter(id=owner_id).exists():
            raise ValidationError({'user_id': ['Unknown user.']})
    return MedicalRecord.objects.create(
        user_id=owner_id,
        uploaded_by=actor,
        verified_by_provider=actor.role == User.ROLE_PROVIDER,
        **{k: v for k, v in data.items() if k in UPDATABLE_FIELDS},
    )


def list_records(actor: User, *, user_id: Optional[int] = None, page: int = 1, limit: int = 20):
    """Return ``(records, total)`` for one owner, newest visit first."""
    owner_id = user_id or actor.id
    if owner_id != actor.id and not is_privileged(actor):
        raise PermissionDenied('Not allowed to list records of another user.')
    qs = MedicalRecord.objects.filter(user_id=owner_id, deleted=False).order_by('-date_of_visit', '-created_at')
    total = qs.count()
    start = (page - 1) * limit
    return list(qs[start:start + limit]), total


def _get_live(record_id: str) -> MedicalRecord:
    record = get_object_or_404(MedicalRecord, pk=record_id)
    if record.deleted:
        raise NotFound('Record not found.')
    return record


def get_record(actor: User, record_id: str) -> MedicalRecord:
    record = _get_live(record_id)
    if record.user_id == actor.id or is_privileged(actor):
        return record
    if record.visibility in (MedicalRecord.VISIBILITY_SHARED, MedicalRecord.VISIBILITY_PUBLIC_EMERGENCY):
        return record
    raise PermissionDenied('Not allowed to view this record.')


def update_record(actor: User, record_id: str, data: dict[str, Any]) -> MedicalRecord:
    record = _get_live(record_id)
    if record.user_id != actor.id and not is_privileged(actor):
        raise PermissionDenied('Not allowed to edit this record.')
    changed = []
    for field in UPDATABLE_FIELDS:
        if field in data:
            setattr(record, field, data[field])
            changed.append(field)
    if changed:
        record.save(update_fields=changed + ['updated_at'])
    return record


def delete_record(actor: User, record_id: str) -> MedicalRecord:
    record = _get_live(record_id)
    if record.user_id != actor.id and not is_admin(actor):
        raise PermissionDenied('Not allowed to delete this record.')
    record.deleted = True
    record.save(update_fields=['deleted', 'updated_at'])
    return record
