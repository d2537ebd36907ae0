from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for custom User model."""
    list_display = ('username', 'email', 'display_name', 'role', 'is_staff', 'is_active')
    list_filter = ('role', 'is_staff', 'is_active', 'date_joined')
    search_fields = ('username', 'email', 'display_name')
    ordering = ('username',)

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Program', {'fields': ('display_name', 'role')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Program', {'fields': ('display_name', 'role')}),
    )
