import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import AuditEvent


def _login(client, username, password, **extra):
    return client.post(reverse('login_view'), {'username': username, 'password': password, **extra},
                       format='json')


@pytest.mark.django_db
def test_login_returns_token_and_jwt_pair(plain_user):
    resp = _login(APIClient(), 'user1', 'P@ssw0rd1')
    assert resp.status_code == 200
    body = resp.json()
    assert body['ok'] is True
    assert body['token'] and body['jwt_access'] and body['jwt_refresh']
    assert body['role'] == 'user'
    assert body['user']['username'] == 'user1'


@pytest.mark.django_db
def test_login_ignores_client_supplied_role(plain_user):
    resp = _login(APIClient(), 'user1', 'P@ssw0rd1', role='admin')
    assert resp.status_code == 200
    assert resp.json()['role'] == 'user'

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {resp.json()['token']}")
    me = client.get(reverse('me_view')).json()
    assert me['role'] == 'user'
    assert 'manage_doctors' not in me['permissions']
    assert 'view_records' in me['permissions']


@pytest.mark.django_db
def test_bad_credentials_are_rejected_and_audited(plain_user):
    resp = _login(APIClient(), 'user1', 'wrong')
    assert resp.status_code == 400
    assert resp.json()['error']['code'] == 'invalid_credentials'
    event = AuditEvent.objects.get(action='login')
    assert event.user is None
    assert event.detail['result'] == 'fail'
    assert event.detail['username'] == 'user1'


@pytest.mark.django_db
def test_missing_password_is_a_validation_error():
    resp = APIClient().post(reverse('login_view'), {'username': 'user1'}, format='json')
    assert resp.status_code == 400
    assert resp.json()['error']['code'] == 'validation_error'


@pytest.mark.django_db
def test_successful_login_is_audited(staff_user):
    _login(APIClient(), 'staff1', 'P@ssw0rd1')
    event = AuditEvent.objects.get(action='login')
    assert event.user == staff_user
    assert event.detail['result'] == 'ok'


@pytest.mark.django_db
def test_jwt_bearer_header_authenticates(admin_user):
    tokens = _login(APIClient(), 'admin1', 'P@ssw0rd1').json()
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['jwt_access']}")
    resp = client.get(reverse('me_view'))
    assert resp.status_code == 200
    assert resp.json()['role'] == 'admin'
    assert 'view_revenue' in resp.json()['permissions']


@pytest.mark.django_db
def test_refresh_issues_new_access_token(plain_user):
    tokens = _login(APIClient(), 'user1', 'P@ssw0rd1').json()
    resp = APIClient().post(reverse('jwt_refresh_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert resp.status_code == 200
    assert resp.json()['jwt_access']


@pytest.mark.django_db
def test_logout_blacklists_refresh_and_drops_token(plain_user):
    tokens = _login(APIClient(), 'user1', 'P@ssw0rd1').json()
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {tokens['token']}")
    resp = client.post(reverse('jwt_logout_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert resp.status_code == 200
    assert resp.json() == {'ok': True, 'blacklisted': 1}
    assert AuditEvent.objects.filter(action='logout', user=plain_user).exists()

    again = APIClient().post(reverse('jwt_refresh_view'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert again.status_code in (400, 401)

    # the DRF token went with the session
    assert client.get(reverse('me_view')).status_code == 401


@pytest.mark.django_db
def test_logout_with_garbage_token(plain_user, as_user):
    resp = as_user(plain_user).post(reverse('jwt_logout_view'), {'refresh': 'not-a-token'}, format='json')
    assert resp.status_code == 400
    assert resp.json()['error']['code'] == 'invalid_token'


@pytest.mark.django_db
def test_me_requires_authentication():
    resp = APIClient().get(reverse('me_view'))
    assert resp.status_code == 401
    assert resp.json()['error']['code'] == 'not_authenticated'


@pytest.mark.django_db
def test_healthz_is_public():
    resp = APIClient().get(reverse('healthz'))
    assert resp.status_code == 200


@pytest.mark.django_db
def test_logout_refuses_another_users_refresh_token(plain_user, staff_user):
    victim = _login(APIClient(), 'staff1', 'P@ssw0rd1').json()
    attacker = _login(APIClient(), 'user1', 'P@ssw0rd1').json()
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Token {attacker['token']}")
    resp = client.post(reverse('jwt_logout_view'), {'refresh': victim['jwt_refresh']}, format='json')
    assert resp.status_code == 403
    assert resp.json()['error']['code'] == 'permission_denied'

    # the other session still refreshes
    again = APIClient().post(reverse('jwt_refresh_view'), {'refresh': victim['jwt_refresh']}, format='json')
    assert again.status_code == 200


@pytest.mark.django_db
def test_profile_read_and_overwrite(plain_user, as_user):
    client = as_user(plain_user)
    resp = client.get(reverse('profile_view'))
    assert resp.status_code == 200
    assert resp.json()['username'] == 'user1'
    assert resp.json()['role'] == 'user'

    resp = client.put(reverse('profile_view'), {'fullName': '<i>Ravi</i> Shankar', 'phone': '9811111111',
                                                'address': '4 Hill Street', 'role': 'admin'}, format='json')
    assert resp.status_code == 200
    assert resp.json()['fullName'] == 'Ravi Shankar'
    plain_user.refresh_from_db()
    assert plain_user.phone == '9811111111'
    assert plain_user.address == '4 Hill Street'
    assert plain_user.role == 'user'
    assert AuditEvent.objects.filter(action='profile_update', user=plain_user).exists()

    # omitted fields are cleared
    client.put(reverse('profile_view'), {'fullName': 'Ravi Shankar'}, format='json')
    plain_user.refresh_from_db()
    assert plain_user.phone == ''


@pytest.mark.django_db
def test_profile_requires_authentication():
    assert APIClient().get(reverse('profile_view')).status_code == 401


@pytest.mark.django_db
def test_password_change_round_trip(plain_user, as_user):
    resp = as_user(plain_user).post(reverse('password_change_view'), {
        'currentPassword': 'P@ssw0rd1', 'newPassword': 'N3w-Secret-42', 'confirmPassword': 'N3w-Secret-42',
    }, format='json')
    assert resp.status_code == 200
    assert _login(APIClient(), 'user1', 'N3w-Secret-42').status_code == 200
    assert _login(APIClient(), 'user1', 'P@ssw0rd1').status_code == 400
    assert AuditEvent.objects.get(action='password_change').detail == {'result': 'ok'}


@pytest.mark.django_db
def test_password_change_with_wrong_current_password(plain_user, as_user):
    resp = as_user(plain_user).post(reverse('password_change_view'), {
        'currentPassword': 'guess', 'newPassword': 'N3w-Secret-42', 'confirmPassword': 'N3w-Secret-42',
    }, format='json')
    assert resp.status_code == 400
    assert 'currentPassword' in resp.json()['error']['message']
    plain_user.refresh_from_db()
    assert plain_user.check_password('P@ssw0rd1')
    assert AuditEvent.objects.get(action='password_change').detail == {'result': 'fail'}


@pytest.mark.django_db
@pytest.mark.parametrize('new,confirm,field', [
    ('N3w-Secret-42', 'N3w-Secret-43', 'confirmPassword'),
    ('123', '123', 'newPassword'),
])
def test_password_change_rejects_mismatch_and_weak_passwords(plain_user, as_user, new, confirm, field):
    resp = as_user(plain_user).post(reverse('password_change_view'), {
        'currentPassword': 'P@ssw0rd1', 'newPassword': new, 'confirmPassword': confirm,
    }, format='json')
    assert resp.status_code == 400
    assert field in resp.json()['error']['message']
    plain_user.refresh_from_db()
    assert plain_user.check_password('P@ssw0rd1')
