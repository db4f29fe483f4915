"""Notification inbox endpoints."""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import PermissionDenied
from notifications.models import Notification
from notifications.serializers import NotificationSerializer
from users.permissions import IsNotBlocked

INBOX_LIMIT = 50


@api_view(["GET"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def notification_list(request):
    """Return the latest notifications for the authenticated user."""
    qs = Notification.objects.filter(user=request.user).order_by("-created_at")[:INBOX_LIMIT]
    return Response(NotificationSerializer(qs, many=True).data)


@api_view(["PUT"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def notification_mark_read(request, pk: int):
    notification = get_object_or_404(Notification, pk=pk)
    if notification.user_id != request.user.id:
        raise PermissionDenied("You cannot modify this notification.")
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return Response({"message": "Notification marked as read."}, status=status.HTTP_200_OK)


@api_view(["PUT"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    if not updated:
        return Response({"message": "No unread notifications to mark."})
    return Response({"message": f"{updated} notifications marked as read.", "updated": updated})
