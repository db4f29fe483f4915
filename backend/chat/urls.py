from django.urls import path

from chat import views

app_name = "chat"

urlpatterns = [
    path("chats/", views.chat_list, name="chat-list"),
    path("chats/<str:chat_id>/messages/", views.chat_messages, name="chat-messages"),
    path("chats/<str:chat_id>/read/", views.chat_mark_read, name="chat-read"),
]
