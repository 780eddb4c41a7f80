import re

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from medcard.models import User
from medcard.serializers.common import clean_text

SELF_ASSIGNABLE_ROLES = [User.ROLE_PATIENT, User.ROLE_CAREGIVER, User.ROLE_PROVIDER]


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate_email(self, v):
        return (v or '').strip().lower()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required.')
        return v


class RegisterSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    password = serializers.CharField(write_only=True, min_length=8, max_length=128)
    role = serializers.CharField(required=False, default=User.ROLE_PATIENT)

    def validate_full_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Full name must be at least 2 characters.')
        return v

    def validate_email(self, v):
        return (v or '').strip().lower()

    def validate_phone(self, v):
        return clean_text(v)

    def validate_role(self, v):
        if v == User.ROLE_ADMIN:
            raise serializers.ValidationError('The admin role cannot be self-assigned.')
        if v not in SELF_ASSIGNABLE_ROLES:
            raise serializers.ValidationError(f'Role must be one of: {", ".join(SELF_ASSIGNABLE_ROLES)}.')
        return v

    def validate_password(self, v):
        if not (re.search(r'[a-z]', v) and re.search(r'[A-Z]', v) and re.search(r'\d', v)):
            raise serializers.ValidationError(
                'Password must contain an uppercase letter, a lowercase letter and a digit.'
            )
        return v

    def validate(self, attrs):
        candidate = User(email=attrs['email'], username=attrs['email'], full_name=attrs['full_name'])
        try:
            validate_password(attrs['password'], user=candidate)
        except DjangoValidationError as e:
            raise serializers.ValidationError({'password': e.messages})
        return attrs


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()
