"""
Django admin registrations for the health card models.

Share tokens and emergency access logs are read-only here: the access
log is append-only and tokens are only issued through the API.
"""

from django.contrib import admin

from .models import AuditEvent, EmergencyAccessLog, HealthProfile, MedicalRecord, ShareToken, UploadedFile, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'full_name', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('email', 'full_name', 'phone')


@admin.register(HealthProfile)
class HealthProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'blood_group', 'public_emergency_id', 'updated_at')
    search_fields = ('user__email', 'user__full_name', 'public_emergency_id')


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'type', 'title', 'visibility', 'deleted', 'date_of_visit')
    list_filter = ('type', 'visibility', 'deleted', 'verified_by_provider')
    search_fields = ('id', 'title', 'user__email')


@admin.register(UploadedFile)
class UploadedFileAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'filename', 'mime', 'size', 'uploaded_at')
    search_fields = ('filename', 'user__email')


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ShareToken)
class ShareTokenAdmin(ReadOnlyAdmin):
    list_display = ('id', 'created_by', 'user_id', 'single_use', 'used', 'expires_at', 'created_at')
    list_filter = ('single_use', 'used')


@admin.register(EmergencyAccessLog)
class EmergencyAccessLogAdmin(ReadOnlyAdmin):
    list_display = ('id', 'user_id', 'method', 'ip', 'accessed_at')
    list_filter = ('method',)


@admin.register(AuditEvent)
class AuditEventAdmin(ReadOnlyAdmin):
    list_display = ('id', 'user', 'action', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)
