from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import DriveApplication, HostApplication, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "role", "is_blocked", "email_verified", "is_active")
    list_filter = BaseUserAdmin.list_filter + ("role", "is_blocked")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace", {"fields": ("role", "is_blocked", "favorites")}),
        (
            "Profile",
            {
                "fields": (
                    "phone",
                    "address",
                    "profile_image_url",
                    "email_verified",
                    "drive_application_status",
                    "host_application_status",
                )
            },
        ),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Marketplace", {"fields": ("role", "phone")}),
    )


@admin.register(HostApplication)
class HostApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "reviewed_by", "created_at")
    list_filter = ("status",)


@admin.register(DriveApplication)
class DriveApplicationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "other_id_type", "created_at")
    list_filter = ("status",)
