import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import Doctor, Patient, User


@pytest.fixture(autouse=True)
def _isolate(settings, tmp_path):
    # throttle counters live in the cache; uploads go to a throwaway dir
    cache.clear()
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username='staff1', password='P@ssw0rd1', role='staff')


@pytest.fixture
def plain_user(db):
    return User.objects.create_user(username='user1', password='P@ssw0rd1', role='user')


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def patient(db):
    return Patient.objects.create(name='Anil Kumar', mobile='9000000001', gender='male', blood_group='O+')


@pytest.fixture
def doctor(db):
    return Doctor.objects.create(name='Asha Menon', specialization='Cardiology')


@pytest.fixture
def as_user():
    """Return a factory building an APIClient authenticated as a given user."""
    return client_for
