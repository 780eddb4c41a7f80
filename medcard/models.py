"""
Database models for the health card backend.

These models capture the core concepts of the system: user accounts,
the one-per-user health profile, medical records and their file
attachments, share tokens and the emergency access audit trail.
Share tokens and access log entries reference users and records by id
only so that the audit trail survives account deletion.
"""
from __future__ import annotations

import os
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


def _new_record_id() -> str:
    return uuid.uuid4().hex


class User(AbstractUser):
    """Custom user model with a role.

    The e-mail address is the login identifier; ``username`` mirrors it so
    that Django's auth machinery keeps working unchanged.
    """
    ROLE_PATIENT = 'patient'
    ROLE_CAREGIVER = 'caregiver'
    ROLE_PROVIDER = 'provider'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_CAREGIVER, 'Caregiver'),
        (ROLE_PROVIDER, 'Provider'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=100)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)

    REQUIRED_FIELDS = ['email', 'full_name']

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        if not self.username:
            self.username = self.email
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class HealthProfile(models.Model):
    """Demographic and emergency information for a single user.

    ``public_emergency_id`` is the short opaque token embedded in the
    user's QR code.  It stays null until first generated and only changes
    when the owner explicitly resets it.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='health_profile')
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=20, blank=True)
    blood_group = models.CharField(max_length=5, blank=True)
    weight_kg = models.FloatField(null=True, blank=True)
    height_cm = models.FloatField(null=True, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    chronic_conditions = models.JSONField(default=list, blank=True)
    # [{name, dosage, frequency}]
    medications = models.JSONField(default=list, blank=True)
    # [{name, relation, phone, notes}]
    emergency_contacts = models.JSONField(default=list, blank=True)
    # {name, phone, provider_id}
    primary_physician = models.JSONField(default=dict, blank=True)
    public_emergency_id = models.CharField(max_length=32, unique=True, null=True, blank=True)
    public_emergency_summary = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"HealthProfile({self.user_id}) {self.public_emergency_id or '-'}"


class MedicalRecord(models.Model):
    """A medical document owned by a patient, optionally uploaded by a provider."""
    TYPE_CHOICES = [
        ('prescription', 'Prescription'),
        ('report', 'Report'),
        ('diagnosis', 'Diagnosis'),
        ('treatment', 'Treatment'),
        ('other', 'Other'),
    ]
    VISIBILITY_PRIVATE = 'private'
    VISIBILITY_SHARED = 'shared'
    VISIBILITY_PUBLIC_EMERGENCY = 'public_emergency'
    VISIBILITY_CHOICES = [
        (VISIBILITY_PRIVATE, 'Private'),
        (VISIBILITY_SHARED, 'Shared'),
        (VISIBILITY_PUBLIC_EMERGENCY, 'Public emergency'),
    ]
    id = models.CharField(max_length=32, primary_key=True, default=_new_record_id, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_records')
    uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='uploaded_records'
    )
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='prescription')
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    date_of_visit = models.DateTimeField(default=timezone.now)
    # [{file_id, url, filename, mime, size}]
    files = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    verified_by_provider = models.BooleanField(default=False)
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default=VISIBILITY_PRIVATE)
    deleted = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', '-date_of_visit'], name='record_user_visit_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.title or self.type} ({self.user_id})"


def _upload_path(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    return f"uploads/{timezone.now().strftime('%Y/%m')}/{uuid.uuid4().hex}{ext}"


class UploadedFile(models.Model):
    """A file attachment stored through Django's storage backend."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='files')
    file = models.FileField(upload_to=_upload_path, max_length=512)
    filename = models.CharField(max_length=255, blank=True)
    mime = models.CharField(max_length=128, blank=True)
    size = models.PositiveIntegerField(default=0)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"file {self.id} user={self.user_id}"


class ShareToken(models.Model):
    """Capability granting access to a whole profile or to specific records.

    Exactly one of ``user_id`` and ``record_ids`` defines the scope.  The
    ``used`` flag flips at most once, for single-use tokens.
    """
    token = models.CharField(max_length=64, unique=True)
    user_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    record_ids = models.JSONField(default=list, blank=True)
    created_by = models.BigIntegerField(null=True, blank=True, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    single_use = models.BooleanField(default=True)
    used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"share {self.token[:8]}… used={self.used}"


class EmergencyAccessLog(models.Model):
    """Append-only record of one disclosure through the QR code or a share token."""
    METHOD_CHOICES = [
        ('qr', 'QR code'),
        ('nfc', 'NFC'),
        ('share_token', 'Share token'),
        ('link', 'Link'),
        ('api', 'API'),
    ]
    user_id = models.BigIntegerField(null=True, blank=True, db_index=True)
    accessed_at = models.DateTimeField(default=timezone.now, db_index=True)
    method = models.CharField(max_length=16, choices=METHOD_CHOICES, default='qr')
    ip = models.GenericIPAddressField(null=True, blank=True)
    device_info = models.TextField(blank=True)
    data_returned = models.JSONField(default=list, blank=True)
    share_token_used = models.CharField(max_length=64, null=True, blank=True)
    meta = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-accessed_at', '-id']

    def __str__(self):
        return f"{self.method}:{self.user_id}@{self.accessed_at:%F %T}"


class AuditEvent(models.Model):
    """Operational audit of authenticated actions (logins, record edits, ...)."""
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
