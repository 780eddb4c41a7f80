import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

from medcard.models import User

PASSWORD = 'Str0ngPass!'


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    # throttle counters live in the default cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def use_store(monkeypatch):
    """Swap the app-wide sharing store for the duration of a test."""
    config = apps.get_app_config('medcard')

    def _use(store):
        monkeypatch.setattr(config, 'store', store)
        return store
    return _use


@pytest.fixture
def make_user(db):
    def _make(email, role=User.ROLE_PATIENT, full_name=None, password=PASSWORD):
        return User.objects.create_user(
            username=email, email=email, password=password,
            full_name=full_name or email.split('@')[0].title(), role=role,
        )
    return _make


@pytest.fixture
def auth_client():
    """Return an APIClient authenticated as ``user`` via a Bearer JWT."""
    from rest_framework_simplejwt.tokens import RefreshToken

    def _client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {RefreshToken.for_user(user).access_token}')
        return client
    return _client
