"""Chat API views."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.models import (
    Chat,
    create_user_message,
    get_or_create_direct_chat,
    mark_chat_read,
)
from chat.serializers import (
    ChatCreateSerializer,
    ChatSerializer,
    MessageSerializer,
    SendMessageSerializer,
)
from core.exceptions import NotFound, PermissionDenied, ValidationFailed
from users.permissions import IsNotBlocked

User = get_user_model()


def _get_participant_chat(user, chat_id: str) -> Chat:
    """Missing chats are 404; chats the user is not part of are 403."""
    chat = Chat.objects.filter(pk=chat_id).first()
    if chat is None:
        raise NotFound("Chat not found.")
    if not chat.has_participant(user):
        raise PermissionDenied("You are not a participant in this chat.")
    return chat


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def chat_list(request):
    """List the user's chats, or open a direct chat with ``recipientId``."""
    if request.method == "POST":
        return _create_direct_chat(request)

    qs = Chat.objects.filter(participants=request.user).prefetch_related("participants")
    serializer = ChatSerializer(qs, many=True, context={"request": request})
    return Response(serializer.data)


def _create_direct_chat(request):
    serializer = ChatCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    recipient_id = serializer.validated_data["recipientId"]
    if recipient_id == request.user.pk:
        raise ValidationFailed("You cannot start a chat with yourself.")
    recipient = User.objects.filter(pk=recipient_id).first()
    if recipient is None:
        raise NotFound("Recipient not found.")

    with transaction.atomic():
        chat, created = get_or_create_direct_chat(request.user, recipient)
    return Response(
        ChatSerializer(chat, context={"request": request}).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def chat_messages(request, chat_id: str):
    chat = _get_participant_chat(request.user, chat_id)
    if request.method == "GET":
        messages = chat.messages.all()
        return Response(MessageSerializer(messages, many=True).data)

    serializer = SendMessageSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    with transaction.atomic():
        message = create_user_message(
            chat,
            request.user,
            text=serializer.validated_data["text"],
            image_url=serializer.validated_data.get("imageUrl", ""),
        )
    return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


@api_view(["PUT"])
@permission_classes([IsAuthenticated, IsNotBlocked])
def chat_mark_read(request, chat_id: str):
    chat = _get_participant_chat(request.user, chat_id)
    changed = mark_chat_read(chat, request.user)
    return Response(
        {
            "message": "Chat marked as read." if changed else "Chat already read.",
            "lastMessage": chat.last_message,
        }
    )
