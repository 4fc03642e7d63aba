"""
Authentication views.

Username/password login hands out both a legacy DRF token and a JWT
pair.  These views live outside ``clinic.views`` so that REST framework
can import the authentication classes in ``clinic.authentication``
without pulling in view modules.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from clinic.policy import RULES, SessionContext, evaluate
from clinic.serializers.auth import LoginSerializer, LogoutSerializer
from clinic.services.audit import log_action


def _user_payload(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'email': user.email,
        'role': user.role,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Log in with username and password.

    The role always comes from the stored user; any ``role`` sent by the
    client is ignored.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        # only the username is recorded for failed attempts
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        return Response({'ok': False, 'error': {'code': 'invalid_credentials',
                                                'message': 'invalid username or password'}}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': _user_payload(user),
    }, status=200)

# ScopedRateThrottle reads throttle_scope from the view class @api_view generates
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    """Current principal, role and the actions the role may perform."""
    ctx = SessionContext.from_request(request)
    return Response({
        'user': _user_payload(request.user),
        'role': ctx.role,
        'permissions': sorted(a for a in RULES if evaluate(ctx.role, a)),
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    data = dict(resp.data)
    if 'access' in data:
        data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response(data, status=resp.status_code)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError:
            return Response({'ok': False, 'error': {'code': 'invalid_token',
                                                    'message': 'token is invalid or expired'}}, status=400)
        owner = token.get(jwt_settings.USER_ID_CLAIM)
        if str(owner) != str(getattr(request.user, jwt_settings.USER_ID_FIELD)):
            raise PermissionDenied('refresh token belongs to another user')
        token.blacklist()
        count = 1
    else:
        for outstanding in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=outstanding)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
