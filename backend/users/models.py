from __future__ import annotations

import hashlib
import secrets

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Marketplace account; ``role`` is the source of truth for authorization."""

    class Role(models.TextChoices):
        RENTER = "renter", "Renter"
        OWNER = "owner", "Owner"
        ADMIN = "admin", "Admin"

    role = models.CharField(max_length=16, choices=Role.choices, default=Role.RENTER)
    phone = models.CharField(max_length=32, blank=True, default="")
    address = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Optional street address shown on rental contracts.",
    )
    profile_image_url = models.URLField(max_length=500, blank=True, default="")
    favorites = models.JSONField(
        default=list,
        blank=True,
        help_text="Vehicle ids the user bookmarked.",
    )
    is_blocked = models.BooleanField(default=False)
    email_verified = models.BooleanField(default=False)
    drive_application_status = models.CharField(max_length=16, blank=True, default="")
    host_application_status = models.CharField(max_length=16, blank=True, default="")

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    @property
    def is_owner(self) -> bool:
        return self.role == self.Role.OWNER

    def display_name(self) -> str:
        return (self.get_full_name() or self.username or f"user-{self.pk}").strip()

    def toggle_favorite(self, vehicle_id: int) -> bool:
        """Add or remove ``vehicle_id``; returns True when it is now a favorite."""
        favorites = [int(value) for value in (self.favorites or [])]
        if vehicle_id in favorites:
            favorites.remove(vehicle_id)
            added = False
        else:
            favorites.append(vehicle_id)
            added = True
        self.favorites = favorites
        return added


class EmailVerificationCode(models.Model):
    """Hashed six digit code proving access to the account email."""

    CODE_DIGITS = 6

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="email_verification_codes",
        on_delete=models.CASCADE,
    )
    email = models.EmailField()
    code_hash = models.CharField(max_length=128)
    expires_at = models.DateTimeField()
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=5)
    consumed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("user", "created_at"), name="evc_user_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Email verification for {self.user}"

    @classmethod
    def generate_code(cls) -> str:
        return f"{secrets.randbelow(10**cls.CODE_DIGITS):0{cls.CODE_DIGITS}d}"

    @staticmethod
    def _hash_code(raw_code: str) -> str:
        return hashlib.sha512(raw_code.encode("utf-8")).hexdigest()

    def set_code(self, raw_code: str) -> None:
        self.code_hash = self._hash_code(raw_code)
        self.attempts = 0
        self.consumed = False

    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at

    def can_attempt(self) -> bool:
        if self.consumed:
            return False
        if self.attempts >= self.max_attempts:
            return False
        return not self.is_expired()

    def check_code(self, raw_code: str) -> bool:
        """
        Constant-time verification of a submitted code.

        Callers are responsible for saving the instance after invoking this method.
        """
        if not self.can_attempt():
            return False
        matches = secrets.compare_digest(self._hash_code(raw_code), self.code_hash)
        self.attempts += 1
        if matches:
            self.consumed = True
        return matches


class ApplicationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    DECLINED = "declined", "Declined"


class HostApplication(models.Model):
    """A renter asking to list vehicles; approval promotes the user to owner."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="host_applications",
        on_delete=models.CASCADE,
    )
    status = models.CharField(
        max_length=16,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.PENDING,
    )
    details = models.JSONField(default=dict, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="reviewed_host_applications",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"Host application {self.pk} ({self.status})"


class DriveApplication(models.Model):
    """Driver's license and secondary ID submitted before renting."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="drive_applications",
        on_delete=models.CASCADE,
    )
    status = models.CharField(
        max_length=16,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.PENDING,
    )
    license_image_url = models.URLField(max_length=500)
    other_id_image_url = models.URLField(max_length=500)
    other_id_type = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"Drive application {self.pk} ({self.status})"
