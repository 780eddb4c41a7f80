"""
Storage backends for the emergency/share core.

The public resolver, the share token issuer/redeemer and the access log
recorder only talk to a :class:`SharingStore`.  :class:`DjangoStore`
persists through the ORM; :class:`MemoryStore` keeps everything in
process and backs the unit tests.  The active store is built once by
:class:`medcard.apps.MedcardConfig` and fetched with :func:`get_store`.
"""
from __future__ import annotations

import copy
import itertools
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional

from django.apps import apps
from django.db import IntegrityError, transaction
from django.utils import timezone

from medcard.models import EmergencyAccessLog, HealthProfile, MedicalRecord, ShareToken, User
from medcard.services.serialization import (
    access_log_dict,
    profile_dict,
    record_dict,
    share_token_fields,
    user_dict,
)


class DuplicateTokenError(Exception):
    """A share token with the same string already exists."""


@dataclass
class ShareGrant:
    token: str
    user_id: Optional[int] = None
    record_ids: list[str] = field(default_factory=list)
    created_by: Optional[int] = None
    expires_at: Optional[datetime] = None
    single_use: bool = True
    used: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SharingStore:
    """Persistence contract for the emergency/share core.

    Every ``find_*`` method returns plain dicts (see
    :mod:`medcard.services.serialization`) or ``None``.  Writes performed
    inside :meth:`atomic` commit together or not at all.
    """

    def atomic(self):
        raise NotImplementedError

    # profiles / users / records
    def find_profile_by_public_id(self, public_id: str) -> Optional[tuple[dict, dict]]:
        """Return ``(profile, owner)`` for an exact public id match."""
        raise NotImplementedError

    def find_user(self, user_id: int) -> Optional[dict]:
        raise NotImplementedError

    def find_profile_by_user(self, user_id: int) -> Optional[dict]:
        raise NotImplementedError

    def find_records_by_ids(self, record_ids: list[str]) -> list[dict]:
        """Non-deleted records in the order of ``record_ids``."""
        raise NotImplementedError

    def find_records_by_owner(self, user_id: int) -> list[dict]:
        """Non-deleted records of a user, newest visit first."""
        raise NotImplementedError

    # share tokens
    def find_share_token(self, token: str) -> Optional[ShareGrant]:
        raise NotImplementedError

    def share_token_exists(self, token: str) -> bool:
        raise NotImplementedError

    def create_share_token(self, grant: ShareGrant) -> ShareGrant:
        """Persist a new grant; raise :class:`DuplicateTokenError` on collision."""
        raise NotImplementedError

    def consume_share_token(self, token: str) -> bool:
        """Atomically flip ``used`` from false to true.

        Returns ``True`` only for the caller that performed the flip.
        """
        raise NotImplementedError

    def list_share_tokens(self, created_by: int) -> list[ShareGrant]:
        raise NotImplementedError

    # access log
    def create_access_log(self, **fields: Any) -> dict:
        raise NotImplementedError

    def list_access_logs(self, *, offset: int = 0, limit: int = 50) -> tuple[list[dict], int]:
        """Newest first by ``accessed_at``; returns ``(items, total)``."""
        raise NotImplementedError


class DjangoStore(SharingStore):
    """ORM-backed store."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with transaction.atomic():
            yield

    def find_profile_by_public_id(self, public_id):
        profile = (
            HealthProfile.objects.select_related('user')
            .filter(public_emergency_id=public_id)
            .first()
        )
        if profile is None:
            return None
        return profile_dict(profile), user_dict(profile.user)

    def find_user(self, user_id):
        user = User.objects.filter(id=user_id).first()
        return user_dict(user) if user else None

    def find_profile_by_user(self, user_id):
        profile = HealthProfile.objects.filter(user_id=user_id).first()
        return profile_dict(profile) if profile else None

    def find_records_by_ids(self, record_ids):
        ids = [str(r) for r in record_ids]
        by_id = {r.id: r for r in MedicalRecord.objects.filter(id__in=ids, deleted=False)}
        return [record_dict(by_id[i]) for i in dict.fromkeys(ids) if i in by_id]

    def find_records_by_owner(self, user_id):
        qs = MedicalRecord.objects.filter(user_id=user_id, deleted=False).order_by('-date_of_visit', '-created_at')
        return [record_dict(r) for r in qs]

    def find_share_token(self, token):
        obj = ShareToken.objects.filter(token=token).first()
        return ShareGrant(**share_token_fields(obj)) if obj else None

    def share_token_exists(self, token):
        return ShareToken.objects.filter(token=token).exists()

    def create_share_token(self, grant):
        try:
            with transaction.atomic():
                obj = ShareToken.objects.create(
                    token=grant.token,
                    user_id=grant.user_id,
                    record_ids=list(grant.record_ids),
                    created_by=grant.created_by,
                    expires_at=grant.expires_at,
                    single_use=grant.single_use,
                    used=False,
                )
        except IntegrityError as exc:
            raise DuplicateTokenError(grant.token) from exc
        return ShareGrant(**share_token_fields(obj))

    def consume_share_token(self, token):
        return ShareToken.objects.filter(token=token, used=False).update(used=True) == 1

    def list_share_tokens(self, created_by):
        qs = ShareToken.objects.filter(created_by=created_by).order_by('-created_at', '-id')
        return [ShareGrant(**share_token_fields(t)) for t in qs]

    def create_access_log(self, **fields):
        return access_log_dict(EmergencyAccessLog.objects.create(**fields))

    def list_access_logs(self, *, offset=0, limit=50):
        qs = EmergencyAccessLog.objects.order_by('-accessed_at', '-id')
        total = qs.count()
        return [access_log_dict(log) for log in qs[offset:offset + limit]], total


class MemoryStore(SharingStore):
    """In-process store guarded by a re-entrant lock.

    Writes made inside :meth:`atomic` are journalled and undone if the
    block raises.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._journal: Optional[list] = None
        self._ids = itertools.count(1)
        self.users: dict[int, dict] = {}
        self.profiles: dict[int, dict] = {}
        self.records: dict[str, dict] = {}
        self.tokens: dict[str, ShareGrant] = {}
        self.access_logs: list[dict] = []

    @contextmanager
    def atomic(self):
        with self._lock:
            outer = self._journal is None
            if outer:
                self._journal = []
            try:
                yield
            except BaseException:
                if outer:
                    for undo in reversed(self._journal):
                        undo()
                raise
            finally:
                if outer:
                    self._journal = None

    def _remember(self, undo) -> None:
        if self._journal is not None:
            self._journal.append(undo)

    # seeding helpers
    def add_user(self, user: dict) -> dict:
        with self._lock:
            self.users[user['id']] = dict(user)
            return user

    def add_profile(self, profile: dict) -> dict:
        with self._lock:
            self.profiles[profile['user_id']] = dict(profile)
            return profile

    def add_record(self, record: dict) -> dict:
        record = {'deleted': False, 'date_of_visit': timezone.now(), **record}
        record['id'] = str(record['id'])
        with self._lock:
            self.records[record['id']] = record
            return record

    # SharingStore
    def find_profile_by_public_id(self, public_id):
        with self._lock:
            for profile in self.profiles.values():
                if profile.get('public_emergency_id') == public_id:
                    owner = self.users.get(profile['user_id'])
                    if owner is None:
                        return None
                    return copy.deepcopy(profile), copy.deepcopy(owner)
        return None

    def find_user(self, user_id):
        with self._lock:
            user = self.users.get(user_id)
            return copy.deepcopy(user) if user else None

    def find_profile_by_user(self, user_id):
        with self._lock:
            profile = self.profiles.get(user_id)
            return copy.deepcopy(profile) if profile else None

    def find_records_by_ids(self, record_ids):
        with self._lock:
            out = []
            for rid in dict.fromkeys(str(r) for r in record_ids):
                rec = self.records.get(rid)
                if rec and not rec.get('deleted'):
                    out.append(copy.deepcopy(rec))
            return out

    def find_records_by_owner(self, user_id):
        with self._lock:
            recs = [copy.deepcopy(r) for r in self.records.values() if r['user_id'] == user_id and not r.get('deleted')]
        recs.sort(key=lambda r: r['date_of_visit'], reverse=True)
        return recs

    def find_share_token(self, token):
        with self._lock:
            grant = self.tokens.get(token)
            return copy.deepcopy(grant) if grant else None

    def share_token_exists(self, token):
        with self._lock:
            return token in self.tokens

    def create_share_token(self, grant):
        with self._lock:
            if grant.token in self.tokens:
                raise DuplicateTokenError(grant.token)
            stored = copy.deepcopy(grant)
            stored.used = False
            stored.created_at = stored.created_at or timezone.now()
            self.tokens[stored.token] = stored
            self._remember(lambda: self.tokens.pop(stored.token, None))
            return copy.deepcopy(stored)

    def consume_share_token(self, token):
        with self._lock:
            grant = self.tokens.get(token)
            if grant is None or grant.used:
                return False
            grant.used = True
            self._remember(lambda: setattr(grant, 'used', False))
            return True

    def list_share_tokens(self, created_by):
        with self._lock:
            grants = [copy.deepcopy(g) for g in self.tokens.values() if g.created_by == created_by]
        grants.sort(key=lambda g: g.created_at, reverse=True)
        return grants

    def create_access_log(self, **fields):
        with self._lock:
            entry = {'id': next(self._ids), 'accessed_at': timezone.now(), **fields}
            entry['data_returned'] = list(entry.get('data_returned') or [])
            self.access_logs.append(entry)
            self._remember(lambda: self.access_logs.remove(entry))
            return dict(entry)

    def list_access_logs(self, *, offset=0, limit=50):
        with self._lock:
            logs = sorted(self.access_logs, key=lambda e: (e['accessed_at'], e['id']), reverse=True)
        return [dict(e) for e in logs[offset:offset + limit]], len(logs)


def get_store() -> SharingStore:
    """Return the store created at start-up by the app config."""
    return apps.get_app_config('medcard').store
