from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Role


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['id', 'name']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['contact', 'name', 'email', 'roles', 'is_active', 'date_joined']
    list_filter = ['roles', 'is_active']
    search_fields = ['contact', 'name', 'email']
    ordering = ['-date_joined']
    fieldsets = (
        (None, {'fields': ('contact', 'password')}),
        ('Personal Info', {'fields': ('name', 'email')}),
        ('Roles & Status', {'fields': ('roles', 'is_active', 'is_staff')}),
        ('Permissions', {'fields': ('groups', 'user_permissions')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('contact', 'name', 'roles', 'password1', 'password2'),
        }),
    )
