from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from .fields import optional_text


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('username is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('password is required')
        return v


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)


class ProfileSerializer(serializers.Serializer):
    """Self-service profile fields; a PUT overwrites all of them."""
    fullName = optional_text(max_length=150)
    phone = optional_text(max_length=20)
    address = optional_text()


class PasswordChangeSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(trim_whitespace=False)
    newPassword = serializers.CharField(trim_whitespace=False)
    confirmPassword = serializers.CharField(trim_whitespace=False)

    def validate(self, attrs):
        if attrs['newPassword'] != attrs['confirmPassword']:
            raise serializers.ValidationError({'confirmPassword': "new passwords don't match"})
        try:
            password_validation.validate_password(attrs['newPassword'], user=self.context.get('user'))
        except DjangoValidationError as e:
            raise serializers.ValidationError({'newPassword': list(e.messages)})
        return attrs
