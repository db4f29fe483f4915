from django.urls import path

from notifications import views

app_name = "notifications"

urlpatterns = [
    path("", views.notification_list, name="notification-list"),
    path("read-all/", views.notification_mark_all_read, name="notification-read-all"),
    path("<int:pk>/read/", views.notification_mark_read, name="notification-read"),
]
