"""
Integration tests for the health card API.

These tests exercise authentication, the health card endpoints, record
access control, uploads and the admin dashboard through DRF's APIClient
within the APITestCase base class.

To run the tests:

```
pytest -q medcard/tests
```
"""
import shutil
import tempfile

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from ..models import AuditEvent, EmergencyAccessLog, HealthProfile, MedicalRecord, UploadedFile, User

PASSWORD = 'Str0ngPass!'


def bearer(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {RefreshToken.for_user(user).access_token}')
    return client


class HealthCardAPITestBase(APITestCase):
    def setUp(self) -> None:
        cache.clear()
        self.patient = User.objects.create_user(
            username='pat@example.com', email='pat@example.com', password=PASSWORD,
            full_name='Pat Patient', role='patient',
        )
        self.other = User.objects.create_user(
            username='other@example.com', email='other@example.com', password=PASSWORD,
            full_name='Olga Other', role='patient',
        )
        self.provider = User.objects.create_user(
            username='doc@example.com', email='doc@example.com', password=PASSWORD,
            full_name='Dr. Doc', role='provider',
        )
        self.admin = User.objects.create_user(
            username='admin@example.com', email='admin@example.com', password=PASSWORD,
            full_name='Ada Admin', role='admin',
        )


class AuthTests(HealthCardAPITestBase):
    def test_register_returns_tokens(self) -> None:
        resp = self.client.post(reverse('register_view'), {
            'full_name': 'New Person', 'email': 'New@Example.com', 'password': 'Abcdef12xy',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data['jwt_access'])
        self.assertEqual(resp.data['user']['email'], 'new@example.com')
        self.assertEqual(resp.data['user']['role'], 'patient')
        self.assertTrue(AuditEvent.objects.filter(action='register').exists())

    def test_register_duplicate_email_conflicts(self) -> None:
        resp = self.client.post(reverse('register_view'), {
            'full_name': 'Pat Again', 'email': 'pat@example.com', 'password': 'Abcdef12xy',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(resp.data['ok'])

    def test_register_cannot_self_assign_admin(self) -> None:
        resp = self.client.post(reverse('register_view'), {
            'full_name': 'Sneaky', 'email': 'sneaky@example.com', 'password': 'Abcdef12xy', 'role': 'admin',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='sneaky@example.com').exists())

    def test_register_rejects_weak_password(self) -> None:
        resp = self.client.post(reverse('register_view'), {
            'full_name': 'Weak', 'email': 'weak@example.com', 'password': 'alllowercase1',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['code'], 'invalid')

    def test_login_returns_jwt_and_legacy_token(self) -> None:
        resp = self.client.post(reverse('login_view'), {'email': 'PAT@example.com', 'password': PASSWORD}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['token'])
        self.assertTrue(resp.data['jwt_refresh'])

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {resp.data['token']}")
        me = client.get(reverse('me_view'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['user']['id'], self.patient.id)

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['jwt_access']}")
        self.assertEqual(client.get(reverse('me_view')).status_code, status.HTTP_200_OK)

    def test_login_bad_credentials_unauthorized(self) -> None:
        resp = self.client.post(reverse('login_view'), {'email': 'pat@example.com', 'password': 'nope'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data, {'ok': False, 'error': {'code': 'authentication_failed', 'message': 'Invalid credentials.'}})

    def test_me_requires_auth(self) -> None:
        self.assertEqual(self.client.get(reverse('me_view')).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_and_logout(self) -> None:
        refresh = RefreshToken.for_user(self.patient)
        resp = self.client.post(reverse('jwt_refresh'), {'refresh': str(refresh)}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['jwt_access'])

        client = bearer(self.patient)
        out = client.post(reverse('jwt_logout'), {'refresh': str(refresh)}, format='json')
        self.assertEqual(out.data['blacklisted'], 1)
        again = self.client.post(reverse('jwt_refresh'), {'refresh': str(refresh)}, format='json')
        self.assertEqual(again.status_code, status.HTTP_401_UNAUTHORIZED)


class HealthCardTests(HealthCardAPITestBase):
    def test_create_then_update_profile(self) -> None:
        client = bearer(self.patient)
        body = {
            'dob': '1990-01-01', 'blood_group': 'O+', 'allergies': ['Peanuts', '<b>Dust</b>'],
            'emergency_contacts': [{'name': 'Sam', 'relation': 'Brother', 'phone': '+1 555'}],
            'public_emergency_id': 'CHOSEN',
        }
        resp = client.post(reverse('upsert_health'), body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        public_id = resp.data['profile']['public_emergency_id']
        self.assertEqual(len(public_id), 8)
        self.assertNotEqual(public_id, 'CHOSEN')
        self.assertEqual(resp.data['profile']['allergies'], ['Peanuts', 'Dust'])

        resp = client.post(reverse('upsert_health'), {'weight_kg': 70}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['profile']['public_emergency_id'], public_id)
        self.assertEqual(resp.data['profile']['weight_kg'], 70)

    def test_profile_text_is_stored_as_plain_text(self) -> None:
        body = {
            'allergies': ['Peanuts & tree nuts', '<b>Dust</b>', '<i></i>'],
            'public_emergency_summary': '<script>x</script>Type 1 diabetes & asthma',
        }
        resp = bearer(self.patient).post(reverse('upsert_health'), body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['profile']['allergies'], ['Peanuts & tree nuts', 'Dust'])
        self.assertEqual(resp.data['profile']['public_emergency_summary'], 'xType 1 diabetes & asthma')

    def test_reset_public_id_orphans_old_id(self) -> None:
        client = bearer(self.patient)
        first = client.post(reverse('upsert_health'), {'blood_group': 'A+'}, format='json').data['profile']
        second = client.post(reverse('upsert_health'), {'reset_public_id': True}, format='json').data['profile']
        self.assertNotEqual(first['public_emergency_id'], second['public_emergency_id'])
        old = APIClient().get(reverse('public_emergency', args=[first['public_emergency_id']]))
        self.assertEqual(old.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(AuditEvent.objects.filter(action='public_id_reset').exists())

    def test_public_ids_are_unique(self) -> None:
        ids = set()
        for i in range(15):
            user = User.objects.create_user(username=f'u{i}@example.com', email=f'u{i}@example.com',
                                            password=PASSWORD, full_name=f'User {i}')
            resp = bearer(user).post(reverse('upsert_health'), {}, format='json')
            ids.add(resp.data['profile']['public_emergency_id'])
        self.assertEqual(len(ids), 15)
        self.assertEqual(HealthProfile.objects.values('public_emergency_id').distinct().count(), 15)

    def test_public_id_and_qr(self) -> None:
        client = bearer(self.patient)
        self.assertEqual(client.get(reverse('my_public_id')).status_code, status.HTTP_404_NOT_FOUND)
        public_id = client.post(reverse('upsert_health'), {}, format='json').data['profile']['public_emergency_id']

        resp = client.get(reverse('my_public_id'))
        self.assertEqual(resp.data['public_id'], public_id)
        self.assertTrue(resp.data['url'].endswith(f'/e/{public_id}'))
        qr = client.get(reverse('my_qr'))
        self.assertEqual(qr.status_code, status.HTTP_200_OK)
        self.assertTrue(qr.data['qr'].startswith('data:image/png;base64,'))

    def test_my_card(self) -> None:
        resp = bearer(self.patient).get(reverse('my_card'))
        self.assertEqual(resp.data['user']['email'], 'pat@example.com')
        self.assertIsNone(resp.data['profile'])


class RecordTests(HealthCardAPITestBase):
    def setUp(self) -> None:
        super().setUp()
        self.record = MedicalRecord.objects.create(user=self.patient, uploaded_by=self.patient, title='Mine')

    def test_patient_creates_own_record(self) -> None:
        resp = bearer(self.patient).post(reverse('records'), {'title': 'Check-up', 'type': 'report'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['data']['user_id'], self.patient.id)
        self.assertFalse(resp.data['data']['verified_by_provider'])

    def test_record_text_drops_markup(self) -> None:
        body = {'title': '<em>Bloods</em> & lipids', 'tags': ['<b>lab</b>', ' ']}
        resp = bearer(self.patient).post(reverse('records'), body, format='json')
        self.assertEqual(resp.data['data']['title'], 'Bloods & lipids')
        self.assertEqual(resp.data['data']['tags'], ['lab'])

    def test_patient_cannot_create_for_other(self) -> None:
        resp = bearer(self.patient).post(reverse('records'), {'title': 'x', 'user_id': self.other.id}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_provider_creates_verified_record_for_patient(self) -> None:
        resp = bearer(self.provider).post(reverse('records'), {'title': 'Dx', 'user_id': self.patient.id}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data['data']['verified_by_provider'])
        self.assertEqual(resp.data['data']['uploaded_by'], self.provider.id)

    def test_list_is_paginated_and_scoped(self) -> None:
        MedicalRecord.objects.create(user=self.patient, title='Deleted', deleted=True)
        resp = bearer(self.patient).get(reverse('records'), {'page': 1, 'limit': 10})
        self.assertEqual(resp.data['meta'], {'page': 1, 'limit': 10, 'total': 1})
        self.assertEqual([r['id'] for r in resp.data['data']], [self.record.id])

        denied = bearer(self.other).get(reverse('records'), {'user_id': self.patient.id})
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        allowed = bearer(self.provider).get(reverse('records'), {'user_id': self.patient.id})
        self.assertEqual(allowed.data['meta']['total'], 1)

    def test_detail_visibility(self) -> None:
        url = reverse('record_detail', args=[self.record.id])
        self.assertEqual(bearer(self.other).get(url).status_code, status.HTTP_403_FORBIDDEN)
        self.record.visibility = 'shared'
        self.record.save()
        self.assertEqual(bearer(self.other).get(url).status_code, status.HTTP_200_OK)
        self.assertEqual(bearer(self.other).get(reverse('record_detail', args=['missing'])).status_code, 404)

    def test_update_and_soft_delete(self) -> None:
        url = reverse('record_detail', args=[self.record.id])
        resp = bearer(self.patient).patch(url, {'title': 'Renamed'}, format='json')
        self.assertEqual(resp.data['data']['title'], 'Renamed')
        self.assertEqual(bearer(self.other).patch(url, {'title': 'x'}, format='json').status_code, 403)
        # providers may edit but not delete
        self.assertEqual(bearer(self.provider).delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.assertEqual(bearer(self.patient).delete(url).status_code, status.HTTP_200_OK)
        self.record.refresh_from_db()
        self.assertTrue(self.record.deleted)
        self.assertEqual(bearer(self.patient).get(url).status_code, status.HTTP_404_NOT_FOUND)


class FileTests(HealthCardAPITestBase):
    def setUp(self) -> None:
        super().setUp()
        self.media = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media, ignore_errors=True)

    def test_upload_and_delete(self) -> None:
        with override_settings(MEDIA_ROOT=self.media):
            upload = SimpleUploadedFile('scan.pdf', b'%PDF-1.4 test', content_type='application/pdf')
            resp = bearer(self.patient).post(reverse('upload_file'), {'file': upload}, format='multipart')
            self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
            self.assertEqual(resp.data['mime'], 'application/pdf')
            file_id = resp.data['id']

            self.assertEqual(bearer(self.other).delete(reverse('delete_file', args=[file_id])).status_code, 403)
            self.assertEqual(bearer(self.patient).delete(reverse('delete_file', args=[file_id])).status_code, 200)
            self.assertFalse(UploadedFile.objects.filter(id=file_id).exists())

    def test_upload_rejects_type_and_size(self) -> None:
        with override_settings(MEDIA_ROOT=self.media, UPLOAD_MAX_MB=1):
            exe = SimpleUploadedFile('x.exe', b'MZ', content_type='application/x-msdownload')
            resp = bearer(self.patient).post(reverse('upload_file'), {'file': exe}, format='multipart')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

            big = SimpleUploadedFile('big.png', b'0' * (1024 * 1024 + 1), content_type='image/png')
            resp = bearer(self.patient).post(reverse('upload_file'), {'file': big}, format='multipart')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class AdminTests(HealthCardAPITestBase):
    def test_admin_only(self) -> None:
        for name in ('admin_summary', 'admin_users', 'admin_access_logs'):
            self.assertEqual(bearer(self.patient).get(reverse(name)).status_code, status.HTTP_403_FORBIDDEN)
            self.assertEqual(bearer(self.provider).get(reverse(name)).status_code, status.HTTP_403_FORBIDDEN)

    def test_summary_counts(self) -> None:
        HealthProfile.objects.create(user=self.patient, public_emergency_id='EMG001')
        MedicalRecord.objects.create(user=self.patient, title='x')
        APIClient().get(reverse('public_emergency', args=['EMG001']))

        resp = bearer(self.admin).get(reverse('admin_summary'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['totalUsers'], 4)
        self.assertEqual(resp.data['totalPatients'], 2)
        self.assertEqual(resp.data['totalProviders'], 1)
        self.assertEqual(resp.data['totalProfiles'], 1)
        self.assertEqual(resp.data['totalRecords'], 1)
        self.assertEqual(len(resp.data['recentAccesses']), 1)

    def test_user_search_and_access_logs(self) -> None:
        resp = bearer(self.admin).get(reverse('admin_users'), {'q': 'olga'})
        self.assertEqual(resp.data['meta']['total'], 1)
        self.assertEqual(resp.data['data'][0]['email'], 'other@example.com')

        for i in range(3):
            EmergencyAccessLog.objects.create(user_id=self.patient.id, method='qr', data_returned=['name'])
        logs = bearer(self.admin).get(reverse('admin_access_logs'), {'page': 2, 'limit': 2})
        self.assertEqual(logs.data['meta'], {'page': 2, 'limit': 2, 'total': 3})
        self.assertEqual(len(logs.data['data']), 1)


class HealthCheckTests(APITestCase):
    def test_health(self) -> None:
        resp = self.client.get(reverse('healthz'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {'ok': True, 'db': True})
