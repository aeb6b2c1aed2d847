from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "display_name", "role", "phone_number", "is_active")
    list_filter = ("role", "is_active", "is_staff")
    search_fields = ("email", "display_name", "phone_number")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace", {"fields": ("display_name", "phone_number", "role")}),
    )
