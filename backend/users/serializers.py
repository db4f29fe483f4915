from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from .models import DriveApplication, HostApplication

User = get_user_model()

logger = logging.getLogger(__name__)


class ProfileSerializer(serializers.ModelSerializer):
    """Profile details; role and moderation flags are admin-managed."""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "phone",
            "address",
            "profile_image_url",
            "role",
            "favorites",
            "is_blocked",
            "email_verified",
            "drive_application_status",
            "host_application_status",
            "date_joined",
        ]
        read_only_fields = (
            "id",
            "username",
            "role",
            "favorites",
            "is_blocked",
            "email_verified",
            "drive_application_status",
            "host_application_status",
            "date_joined",
        )

    @staticmethod
    def _clean_optional_text(value: Optional[str]) -> str:
        return (value or "").strip()

    def validate_phone(self, value: Optional[str]) -> str:
        return self._clean_optional_text(value)

    def validate_address(self, value: Optional[str]) -> str:
        return self._clean_optional_text(value)

    def validate_email(self, value: str) -> str:
        value = (value or "").strip().lower()
        qs = User.objects.filter(email__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if value and qs.exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def update(self, instance, validated_data):
        if "email" in validated_data and validated_data["email"] != instance.email:
            instance.email_verified = False
        return super().update(instance, validated_data)


class AdminUserSerializer(ProfileSerializer):
    listingCount = serializers.IntegerField(source="listing_count", read_only=True)

    class Meta(ProfileSerializer.Meta):
        fields = ProfileSerializer.Meta.fields + ["listingCount"]


class SignupSerializer(serializers.ModelSerializer):
    """New accounts always start as renters."""

    password = serializers.CharField(write_only=True)
    email = serializers.EmailField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "password",
            "first_name",
            "last_name",
            "phone",
        ]
        extra_kwargs = {
            "password": {"write_only": True},
            "username": {"required": False},
        }

    def validate_password(self, value: str) -> str:
        validate_password(value)
        return value

    def validate_email(self, value: str) -> str:
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def create(self, validated_data: dict):
        password = validated_data.pop("password")
        if not validated_data.get("username"):
            validated_data["username"] = self._generate_username(validated_data["email"])
        return User.objects.create_user(
            password=password, role=User.Role.RENTER, **validated_data
        )

    @staticmethod
    def _generate_username(email: str) -> str:
        base = (email.split("@", 1)[0] or "user")[:140]
        candidate = base
        suffix = 1
        while User.objects.filter(username=candidate).exists():
            suffix += 1
            candidate = f"{base}{suffix}"
        return candidate


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[User.Role.OWNER, User.Role.RENTER])


class BlockUpdateSerializer(serializers.Serializer):
    isBlocked = serializers.BooleanField()

    def to_internal_value(self, data):
        # Only real booleans are accepted; "true"/"1" strings are rejected.
        if not isinstance(data.get("isBlocked"), bool):
            raise serializers.ValidationError({"isBlocked": ["isBlocked must be a boolean."]})
        return super().to_internal_value(data)


class EmailCodeSerializer(serializers.Serializer):
    code = serializers.RegexField(r"^\d{6}$", error_messages={"invalid": "Enter the 6 digit code."})


class DriveApplicationCreateSerializer(serializers.Serializer):
    licenseImageBase64 = serializers.CharField()
    otherIdImageBase64 = serializers.CharField()
    otherIdType = serializers.CharField(max_length=64)


class DriveApplicationSerializer(serializers.ModelSerializer):
    class Meta:
        model = DriveApplication
        fields = [
            "id",
            "user",
            "status",
            "license_image_url",
            "other_id_image_url",
            "other_id_type",
            "created_at",
        ]
        read_only_fields = fields


class HostApplicationSerializer(serializers.ModelSerializer):
    username = serializers.ReadOnlyField(source="user.username")
    email = serializers.ReadOnlyField(source="user.email")

    class Meta:
        model = HostApplication
        fields = [
            "id",
            "user",
            "username",
            "email",
            "status",
            "details",
            "reviewed_by",
            "reviewed_at",
            "created_at",
        ]
        read_only_fields = [
            "id",
            "user",
            "username",
            "email",
            "status",
            "reviewed_by",
            "reviewed_at",
            "created_at",
        ]
