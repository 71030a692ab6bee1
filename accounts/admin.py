from django.contrib import admin

from .models import SocialAccount, SystemConfig, UserAuditLog


@admin.register(SocialAccount)
class SocialAccountAdmin(admin.ModelAdmin):
    list_display = ['user', 'provider', 'provider_user_id', 'email', 'created_at']
    list_filter = ['provider']
    search_fields = ['user__username', 'email', 'provider_user_id']


@admin.register(SystemConfig)
class SystemConfigAdmin(admin.ModelAdmin):
    list_display = ['key', 'updated_at']
    search_fields = ['key']


@admin.register(UserAuditLog)
class UserAuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'actor_username', 'action', 'target_type', 'target_id', 'ip_address']
    list_filter = ['action', 'target_type']
    search_fields = ['actor_username', 'action', 'target_id']
    ordering = ['-timestamp']
