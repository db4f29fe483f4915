"""Serializers for chat threads and messages."""

from __future__ import annotations

from rest_framework import serializers

from chat.models import SYSTEM_SENDER, Chat, Message

EMPTY_LAST_MESSAGE_TEXT = "No messages yet"


class ChatParticipantSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.CharField(source="display_name")
    profileImageUrl = serializers.CharField(source="profile_image_url")
    role = serializers.CharField()


class ChatSerializer(serializers.ModelSerializer):
    """Summarize a chat for the requesting participant."""

    bookingId = serializers.SerializerMethodField()
    otherUser = serializers.SerializerMethodField()
    lastMessage = serializers.SerializerMethodField()
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Chat
        fields = ["id", "bookingId", "otherUser", "lastMessage", "updatedAt"]

    def get_bookingId(self, obj: Chat) -> int | None:
        return obj.booking_id

    def _other_party(self, obj: Chat):
        request = self.context.get("request")
        user_id = getattr(getattr(request, "user", None), "pk", None)
        for participant in obj.participants.all():
            if participant.pk != user_id:
                return participant
        return None

    def get_otherUser(self, obj: Chat) -> dict | None:
        other = self._other_party(obj)
        if other is None:
            return None
        return ChatParticipantSerializer(other).data

    def get_lastMessage(self, obj: Chat) -> dict:
        if obj.last_message:
            return obj.last_message
        return {
            "text": EMPTY_LAST_MESSAGE_TEXT,
            "senderId": SYSTEM_SENDER,
            "timestamp": obj.created_at.isoformat(),
            "readBy": [],
        }


class MessageSerializer(serializers.ModelSerializer):
    senderId = serializers.SerializerMethodField()
    imageUrl = serializers.CharField(source="image_url", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "senderId", "text", "imageUrl", "createdAt"]
        read_only_fields = fields

    def get_senderId(self, obj: Message) -> str:
        return str(obj.sender_id) if obj.sender_id else SYSTEM_SENDER


class SendMessageSerializer(serializers.Serializer):
    text = serializers.CharField(required=False, allow_blank=True, max_length=4000, default="")
    imageUrl = serializers.URLField(required=False, allow_blank=True, max_length=500, default="")

    def validate(self, attrs):
        attrs["text"] = attrs.get("text", "").strip()
        if not attrs["text"] and not attrs.get("imageUrl"):
            raise serializers.ValidationError("A message needs text or an image.")
        return attrs


class ChatCreateSerializer(serializers.Serializer):
    recipientId = serializers.IntegerField()
