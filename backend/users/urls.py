from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import api

app_name = "users"

urlpatterns = [
    path("", api.AdminUserListView.as_view(), name="user-list"),
    path("signup/", api.SignupView.as_view(), name="signup"),
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("me/", api.MeView.as_view(), name="me"),
    path("me/favorites/<int:vehicle_id>/", api.toggle_favorite, name="toggle_favorite"),
    path(
        "me/email-verification/",
        api.send_email_verification,
        name="email_verification_send",
    ),
    path(
        "me/email-verification/verify/",
        api.verify_email,
        name="email_verification_verify",
    ),
    path("drive-applications/", api.submit_drive_application, name="drive_application"),
    path(
        "host-applications/",
        api.HostApplicationListCreateView.as_view(),
        name="host_applications",
    ),
    path(
        "host-applications/<int:pk>/approve/",
        api.approve_host_application,
        name="host_application_approve",
    ),
    path(
        "host-applications/<int:pk>/decline/",
        api.decline_host_application,
        name="host_application_decline",
    ),
    path("<int:pk>/role/", api.update_user_role, name="user_role"),
    path("<int:pk>/block/", api.update_user_block_status, name="user_block"),
]
