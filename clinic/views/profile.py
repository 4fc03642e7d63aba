"""
Self-service profile endpoints.

Any signed-in user can read and overwrite their own display name, phone
and address, and change their password.  The role is never editable
here; only an administrator changes roles through Django admin.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.auth import PasswordChangeSerializer, ProfileSerializer
from ..services.audit import log_action


def _profile_payload(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'role': user.role,
        'fullName': user.get_full_name(),
        'phone': user.phone,
        'address': user.address,
    }


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    """Return or update the current user's profile."""
    user = request.user
    if request.method == 'GET':
        return Response(_profile_payload(user))

    s = ProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    # the full name lives in first_name, as the admin screens display it
    user.first_name = s.validated_data['fullName']
    user.last_name = ''
    user.phone = s.validated_data['phone']
    user.address = s.validated_data['address']
    user.save(update_fields=['first_name', 'last_name', 'phone', 'address'])
    log_action(user=user, action='profile_update', object_type='user', object_id=user.id)
    return Response(_profile_payload(user))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def password_change_view(request):
    """Change the current user's password after checking the old one.

    Existing tokens stay valid; use logout to end other sessions.
    """
    user = request.user
    s = PasswordChangeSerializer(data=request.data, context={'user': user})
    s.is_valid(raise_exception=True)
    if not user.check_password(s.validated_data['currentPassword']):
        log_action(user=user, action='password_change', object_type='user', object_id=user.id,
                   detail={'result': 'fail'})
        raise ValidationError({'currentPassword': 'current password is incorrect'})
    user.set_password(s.validated_data['newPassword'])
    user.save(update_fields=['password'])
    log_action(user=user, action='password_change', object_type='user', object_id=user.id,
               detail={'result': 'ok'})
    return Response({'ok': True})

# guessing the current password is throttled like a login attempt
password_change_view.cls.throttle_scope = 'login'
