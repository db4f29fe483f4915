from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.exceptions import Conflict, ValidationFailed
from notifications.services import create_notification, send_verification_code_email
from storage.s3 import upload_base64_image
from vehicles.models import Vehicle

from .models import ApplicationStatus, DriveApplication, EmailVerificationCode, HostApplication
from .permissions import IsAdminRole, IsNotBlocked
from .serializers import (
    AdminUserSerializer,
    BlockUpdateSerializer,
    DriveApplicationCreateSerializer,
    DriveApplicationSerializer,
    EmailCodeSerializer,
    HostApplicationSerializer,
    ProfileSerializer,
    RoleUpdateSerializer,
    SignupSerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()

AUTHENTICATED = [permissions.IsAuthenticated, IsNotBlocked]
ADMIN_ONLY = [permissions.IsAuthenticated, IsNotBlocked, IsAdminRole]


class SignupView(generics.CreateAPIView):
    """Public signup endpoint; every new account is a renter."""

    queryset = User.objects.all()
    serializer_class = SignupSerializer
    permission_classes = [permissions.AllowAny]


class MeView(generics.RetrieveUpdateDestroyAPIView):
    """Authenticated profile view for the current user."""

    serializer_class = ProfileSerializer
    permission_classes = AUTHENTICATED

    def get_object(self):
        user = self.request.user
        self.check_object_permissions(self.request, user)
        return user

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        logger.info("users: account %s deleted by its owner", user.pk)
        user.delete()
        return Response({"message": "Account deleted."}, status=status.HTTP_200_OK)


@api_view(["POST"])
@permission_classes(AUTHENTICATED)
def toggle_favorite(request, vehicle_id: int):
    get_object_or_404(Vehicle, pk=vehicle_id)
    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=request.user.pk)
        added = user.toggle_favorite(vehicle_id)
        user.save(update_fields=["favorites"])
    return Response({"isFavorite": added, "favorites": user.favorites})


@api_view(["POST"])
@permission_classes(AUTHENTICATED)
def send_email_verification(request):
    """Issue a fresh 6 digit code and email it."""
    user = request.user
    if not user.email:
        raise ValidationFailed("Add an email address to your profile first.")
    if user.email_verified:
        return Response({"message": "Email is already verified."})

    ttl = timedelta(minutes=getattr(settings, "EMAIL_VERIFICATION_TTL_MINUTES", 15))
    EmailVerificationCode.objects.filter(user=user, consumed=False).update(consumed=True)
    raw_code = EmailVerificationCode.generate_code()
    challenge = EmailVerificationCode(
        user=user,
        email=user.email,
        expires_at=timezone.now() + ttl,
    )
    challenge.set_code(raw_code)
    challenge.save()

    if not send_verification_code_email(user, raw_code):
        logger.warning("users: verification email for user %s was not delivered", user.pk)
    return Response(
        {"message": "Verification code sent.", "expiresAt": challenge.expires_at},
        status=status.HTTP_200_OK,
    )


@api_view(["POST"])
@permission_classes(AUTHENTICATED)
def verify_email(request):
    serializer = EmailCodeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = request.user

    challenge = (
        EmailVerificationCode.objects.filter(user=user, email=user.email, consumed=False)
        .order_by("-created_at")
        .first()
    )
    if challenge is None or not challenge.can_attempt():
        raise ValidationFailed("Verification code expired. Request a new one.")

    matched = challenge.check_code(serializer.validated_data["code"])
    challenge.save(update_fields=["attempts", "consumed"])
    if not matched:
        raise ValidationFailed("Invalid verification code.")

    user.email_verified = True
    user.save(update_fields=["email_verified"])
    return Response({"message": "Email verified.", "emailVerified": True})


@api_view(["POST"])
@permission_classes(AUTHENTICATED)
def submit_drive_application(request):
    serializer = DriveApplicationCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = request.user

    if DriveApplication.objects.filter(user=user, status=ApplicationStatus.PENDING).exists():
        raise Conflict("You already have a pending drive application.")

    prefix = f"drive-applications/{user.pk}"
    license_url = upload_base64_image(data["licenseImageBase64"], prefix=prefix)
    other_id_url = upload_base64_image(data["otherIdImageBase64"], prefix=prefix)
    application = DriveApplication.objects.create(
        user=user,
        license_image_url=license_url,
        other_id_image_url=other_id_url,
        other_id_type=data["otherIdType"].strip(),
    )
    user.drive_application_status = application.status
    user.save(update_fields=["drive_application_status"])
    return Response(
        {
            "message": "Drive application submitted.",
            "application": DriveApplicationSerializer(application).data,
        },
        status=status.HTTP_201_CREATED,
    )


class HostApplicationListCreateView(generics.ListCreateAPIView):
    """Users apply to host; admins list the pending queue."""

    serializer_class = HostApplicationSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permission() for permission in ADMIN_ONLY]
        return [permission() for permission in AUTHENTICATED]

    def get_queryset(self):
        return HostApplication.objects.select_related("user").filter(
            status=ApplicationStatus.PENDING
        )

    def perform_create(self, serializer):
        user = self.request.user
        if user.role != User.Role.RENTER:
            raise Conflict("Only renters can apply to become hosts.")
        if HostApplication.objects.filter(user=user, status=ApplicationStatus.PENDING).exists():
            raise Conflict("You already have a pending host application.")
        serializer.save(user=user)
        user.host_application_status = ApplicationStatus.PENDING
        user.save(update_fields=["host_application_status"])


def _review_host_application(request, pk: int, decision: str) -> Response:
    with transaction.atomic():
        application = get_object_or_404(
            HostApplication.objects.select_for_update().select_related("user"), pk=pk
        )
        if application.status != ApplicationStatus.PENDING:
            raise Conflict(
                "This application has already been reviewed.", currentState=application.status
            )
        application.status = decision
        application.reviewed_by = request.user
        application.reviewed_at = timezone.now()
        application.save(update_fields=["status", "reviewed_by", "reviewed_at"])
        applicant = application.user
        applicant.host_application_status = decision
        update_fields = ["host_application_status"]
        if decision == ApplicationStatus.APPROVED:
            applicant.role = User.Role.OWNER
            update_fields.append("role")
        applicant.save(update_fields=update_fields)

    if decision == ApplicationStatus.APPROVED:
        message = "Your host application has been approved! You can now list vehicles."
    else:
        message = "Your host application has been declined."
    create_notification(application.user, message, "/profile")
    return Response(
        {
            "message": f"Application {decision}.",
            "application": HostApplicationSerializer(application).data,
        }
    )


@api_view(["POST"])
@permission_classes(ADMIN_ONLY)
def approve_host_application(request, pk: int):
    return _review_host_application(request, pk, ApplicationStatus.APPROVED)


@api_view(["POST"])
@permission_classes(ADMIN_ONLY)
def decline_host_application(request, pk: int):
    return _review_host_application(request, pk, ApplicationStatus.DECLINED)


class AdminUserListView(generics.ListAPIView):
    serializer_class = AdminUserSerializer
    permission_classes = ADMIN_ONLY
    search_fields = ["username", "email", "first_name", "last_name"]
    filterset_fields = ["role", "is_blocked"]

    def get_queryset(self):
        return User.objects.annotate(listing_count=Count("vehicles")).order_by("id")


@api_view(["PUT"])
@permission_classes(ADMIN_ONLY)
def update_user_role(request, pk: int):
    serializer = RoleUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = get_object_or_404(User, pk=pk)
    if user.role == User.Role.ADMIN:
        raise Conflict("Admin roles cannot be changed here.", currentState=user.role)
    user.role = serializer.validated_data["role"]
    user.save(update_fields=["role"])
    return Response({"message": f"User role updated to {user.role}.", "role": user.role})


@api_view(["PUT"])
@permission_classes(ADMIN_ONLY)
def update_user_block_status(request, pk: int):
    serializer = BlockUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = get_object_or_404(User, pk=pk)
    if user.pk == request.user.pk:
        raise ValidationFailed("You cannot block your own account.")
    user.is_blocked = serializer.validated_data["isBlocked"]
    user.save(update_fields=["is_blocked"])
    state = "blocked" if user.is_blocked else "unblocked"
    logger.info("users: admin %s %s user %s", request.user.pk, state, user.pk)
    return Response({"message": f"User {state}.", "isBlocked": user.is_blocked})
