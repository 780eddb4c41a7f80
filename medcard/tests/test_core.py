"""
Emergency resolver, share tokens and the access log against the in-memory store.
"""
import threading
from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from medcard.exceptions import AccessLogWriteError, Gone, NothingToShare
from medcard.services.access_log import RequestContext, record_access
from medcard.services.emergency import resolve_emergency_view
from medcard.services.redaction import PUBLIC_VIEW_FIELDS, derive_age
from medcard.services.sharing import check_share_scope, issue_share_token, redeem_share_token
from medcard.services.stores import MemoryStore, ShareGrant

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=dt_timezone.utc)
CTX = RequestContext(ip='203.0.113.7', user_agent='pytest-agent')


class _User:
    def __init__(self, id, role='patient'):
        self.id = id
        self.role = role
        self.is_authenticated = True


@pytest.fixture
def store():
    s = MemoryStore()
    s.add_user({'id': 1, 'full_name': 'Rajesh Kumar', 'email': 'rajesh@demo.com', 'phone': '', 'role': 'patient'})
    s.add_user({'id': 2, 'full_name': 'Priya Sharma', 'email': 'priya@demo.com', 'phone': '', 'role': 'patient'})
    s.add_profile({
        'user_id': 1,
        'public_emergency_id': 'EMG001',
        'dob': date(1990, 1, 1),
        'blood_group': 'O+',
        'weight_kg': 75,
        'height_cm': 175,
        'allergies': ['Peanuts'],
        'chronic_conditions': [],
        'medications': [{'name': 'Metformin', 'dosage': '500mg', 'frequency': 'Twice daily'}],
        'emergency_contacts': [{'name': 'Sunita', 'relation': 'Wife', 'phone': '+91 1', 'email': 'x@y.z'}],
        'primary_physician': {'name': 'Dr. Reddy'},
        'public_emergency_summary': 'Diabetic.',
    })
    s.add_record({'id': 'r1', 'user_id': 1, 'title': 'Blood panel', 'date_of_visit': NOW - timedelta(days=2)})
    s.add_record({'id': 'r2', 'user_id': 1, 'title': 'Prescription', 'date_of_visit': NOW - timedelta(days=1)})
    s.add_record({'id': 'r3', 'user_id': 2, 'title': 'Asthma plan', 'date_of_visit': NOW})
    s.add_record({'id': 'gone', 'user_id': 1, 'title': 'Old', 'deleted': True})
    return s


# ---------------------------------------------------------------------
# Emergency resolver
# ---------------------------------------------------------------------
def test_emergency_view_has_fixed_fields_and_age(store):
    view = resolve_emergency_view(store, 'EMG001', CTX, now=NOW)
    assert tuple(view.keys()) == PUBLIC_VIEW_FIELDS
    # 12418 days / 365.25 = 33.998
    assert view['age'] == 33
    assert view['allergies'] == ['Peanuts']
    assert view['chronic_conditions'] == []
    assert view['name'] == 'Rajesh Kumar'
    assert view['note'] == 'Diabetic.'
    # contacts are reduced to the public subset
    assert view['emergency_contacts'] == [{'name': 'Sunita', 'relation': 'Wife', 'phone': '+91 1'}]
    for hidden in ('weight_kg', 'height_cm', 'medications', 'primary_physician'):
        assert hidden not in view


def test_emergency_view_writes_one_log_entry(store):
    resolve_emergency_view(store, 'EMG001', CTX, now=NOW)
    assert len(store.access_logs) == 1
    entry = store.access_logs[0]
    assert entry['user_id'] == 1
    assert entry['method'] == 'qr'
    assert entry['ip'] == '203.0.113.7'
    assert entry['device_info'] == 'pytest-agent'
    assert entry['data_returned'] == list(PUBLIC_VIEW_FIELDS)
    assert entry['share_token_used'] is None


@pytest.mark.parametrize('public_id', ['', 'EMG999', 'emg001', 'EMG00'])
def test_unknown_public_id_is_not_found_and_not_logged(store, public_id):
    with pytest.raises(NotFound):
        resolve_emergency_view(store, public_id, CTX, now=NOW)
    assert store.access_logs == []


def test_emergency_view_without_dob_has_null_age(store):
    store.profiles[1]['dob'] = None
    assert resolve_emergency_view(store, 'EMG001', CTX, now=NOW)['age'] is None


def test_derive_age_uses_elapsed_days_over_365_25():
    assert derive_age(date(1990, 6, 15), date(2024, 6, 14)) == 33
    assert derive_age(date(1990, 6, 15), date(2024, 6, 15)) == 34
    assert derive_age('1990-06-15', date(2024, 6, 16)) == 34
    assert derive_age(datetime(1990, 1, 1, 8, 0), date(2024, 1, 2)) == 34
    # 365 days is short of 365.25
    assert derive_age(date(2001, 1, 1), date(2002, 1, 1)) == 0
    assert derive_age(date(2001, 1, 1), date(2002, 1, 2)) == 1
    assert derive_age(date(2030, 1, 1), date(2024, 1, 1)) == 0
    assert derive_age(None, date(2024, 1, 1)) is None


def test_emergency_view_age_one_year_after_birth(store):
    store.profiles[1]['dob'] = date(2001, 1, 1)
    view = resolve_emergency_view(store, 'EMG001', CTX, now=datetime(2002, 1, 1, 12, 0, tzinfo=dt_timezone.utc))
    assert view['age'] == 0


def test_emergency_view_fails_closed_when_log_write_fails(store):
    class BrokenLog(MemoryStore):
        def create_access_log(self, **fields):
            raise OSError('disk full')

    broken = BrokenLog()
    broken.users, broken.profiles = store.users, store.profiles
    with pytest.raises(AccessLogWriteError):
        resolve_emergency_view(broken, 'EMG001', CTX, now=NOW)


# ---------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------
def test_issue_requires_exactly_one_scope(store):
    with pytest.raises(ValidationError):
        issue_share_token(store, created_by=1)
    with pytest.raises(ValidationError):
        issue_share_token(store, created_by=1, record_ids=[])
    with pytest.raises(ValidationError):
        issue_share_token(store, created_by=1, record_ids=['r1'], user_id=1)
    assert store.tokens == {}


def test_issued_token_is_unused_random_and_not_logged(store):
    a = issue_share_token(store, created_by=1, record_ids=['r1'])
    b = issue_share_token(store, created_by=1, user_id=1, single_use=False)
    assert a.token != b.token
    assert len(a.token) >= 43
    assert a.used is False and a.single_use is True
    assert b.single_use is False
    assert store.access_logs == []


def test_issue_retries_on_collision(store, monkeypatch):
    store.tokens['taken'] = ShareGrant(token='taken', user_id=1)
    values = iter(['taken', 'fresh'])
    monkeypatch.setattr('medcard.services.sharing.secrets.token_urlsafe', lambda n: next(values))
    grant = issue_share_token(store, created_by=1, user_id=1)
    assert grant.token == 'fresh'


def test_share_scope_rules(store):
    patient, other = _User(1), _User(2)
    provider = _User(3, role='provider')
    check_share_scope(store, patient, record_ids=['r1', 'r2'])
    check_share_scope(store, patient, user_id=1)
    check_share_scope(store, provider, record_ids=['r3'])
    with pytest.raises(PermissionDenied):
        check_share_scope(store, other, record_ids=['r1'])
    with pytest.raises(PermissionDenied):
        check_share_scope(store, other, user_id=1)
    with pytest.raises(ValidationError):
        check_share_scope(store, patient, record_ids=['nope'])
    with pytest.raises(ValidationError):
        check_share_scope(store, provider, user_id=42)


# ---------------------------------------------------------------------
# Redemption
# ---------------------------------------------------------------------
def test_single_use_record_token_second_redeem_is_gone(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1', 'r2'])
    payload = redeem_share_token(store, grant.token, CTX, now=NOW)
    assert list(payload) == ['records']
    assert [r['id'] for r in payload['records']] == ['r1', 'r2']
    assert store.tokens[grant.token].used is True

    with pytest.raises(Gone):
        redeem_share_token(store, grant.token, CTX, now=NOW)
    assert len(store.access_logs) == 1
    entry = store.access_logs[0]
    assert entry['method'] == 'share_token'
    assert entry['user_id'] == 1
    assert entry['data_returned'] == ['records']
    assert entry['share_token_used'] == grant.token


def test_user_scope_payload(store):
    grant = issue_share_token(store, created_by=1, user_id=1)
    payload = redeem_share_token(store, grant.token, CTX, now=NOW)
    assert set(payload) == {'user', 'profile', 'records'}
    assert payload['user']['full_name'] == 'Rajesh Kumar'
    assert 'password' not in payload['user']
    # newest visit first, deleted records left out
    assert [r['id'] for r in payload['records']] == ['r2', 'r1']
    assert store.access_logs[0]['data_returned'] == ['user', 'profile', 'records']


def test_deleted_records_are_not_disclosed(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1', 'gone'])
    payload = redeem_share_token(store, grant.token, CTX, now=NOW)
    assert [r['id'] for r in payload['records']] == ['r1']


def test_reusable_token_redeems_repeatedly(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1'], single_use=False)
    for _ in range(3):
        redeem_share_token(store, grant.token, CTX, now=NOW)
    assert len(store.access_logs) == 3
    assert store.tokens[grant.token].used is False


def test_expired_token_is_gone_even_if_unused(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1'], single_use=False,
                              expires_at=NOW - timedelta(seconds=1))
    with pytest.raises(Gone):
        redeem_share_token(store, grant.token, CTX, now=NOW)
    assert store.access_logs == []


def test_token_valid_until_expiry(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1'], expires_at=NOW)
    assert redeem_share_token(store, grant.token, CTX, now=NOW)['records']


def test_unknown_token_is_not_found(store):
    with pytest.raises(NotFound):
        redeem_share_token(store, 'does-not-exist', CTX, now=NOW)
    with pytest.raises(NotFound):
        redeem_share_token(store, '', CTX, now=NOW)
    assert store.access_logs == []


def test_token_without_scope_is_bad_request(store):
    store.tokens['blank'] = ShareGrant(token='blank')
    with pytest.raises(NothingToShare):
        redeem_share_token(store, 'blank', CTX, now=NOW)
    assert store.tokens['blank'].used is False
    assert store.access_logs == []


def test_user_scope_for_removed_user_is_not_found(store):
    grant = issue_share_token(store, created_by=1, user_id=2)
    del store.users[2]
    with pytest.raises(NotFound):
        redeem_share_token(store, grant.token, CTX, now=NOW)
    assert store.tokens[grant.token].used is False


def test_log_failure_rolls_back_consumption(store):
    class BrokenLog(MemoryStore):
        def create_access_log(self, **fields):
            raise RuntimeError('log backend down')

    broken = BrokenLog()
    broken.users, broken.records = store.users, store.records
    grant = issue_share_token(broken, created_by=1, record_ids=['r1'])
    with pytest.raises(AccessLogWriteError):
        redeem_share_token(broken, grant.token, CTX, now=NOW)
    assert broken.tokens[grant.token].used is False


def test_concurrent_single_use_redeem_succeeds_once(store):
    grant = issue_share_token(store, created_by=1, record_ids=['r1'])
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            redeem_share_token(store, grant.token, CTX, now=NOW)
            outcome = 'ok'
        except Gone:
            outcome = 'gone'
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count('ok') == 1
    assert results.count('gone') == workers - 1
    assert len(store.access_logs) == 1


# ---------------------------------------------------------------------
# Access log
# ---------------------------------------------------------------------
def test_record_access_rejects_unknown_method(store):
    with pytest.raises(ValueError):
        record_access(store, user_id=1, method='carrier-pigeon', context=CTX, data_returned=[])


def test_access_logs_listed_newest_first(store):
    for minutes in (3, 1, 2):
        record_access(store, user_id=1, method='qr', context=CTX, data_returned=['name'],
                      now=NOW + timedelta(minutes=minutes))
    items, total = store.list_access_logs(offset=0, limit=2)
    assert total == 3
    assert [e['accessed_at'] for e in items] == [NOW + timedelta(minutes=3), NOW + timedelta(minutes=2)]


def test_request_context_from_request():
    class Req:
        META = {'REMOTE_ADDR': '198.51.100.1', 'HTTP_USER_AGENT': 'x' * 600}

    ctx = RequestContext.from_request(Req())
    assert ctx.ip == '198.51.100.1'
    assert len(ctx.user_agent) == 512
