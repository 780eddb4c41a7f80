"""
Upload validation and storage for record attachments.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied, ValidationError

from medcard.models import UploadedFile, User
from medcard.permissions import is_admin

logger = logging.getLogger(__name__)


def validate_upload(upload) -> None:
    if upload is None:
        raise ValidationError({'file': ['No file uploaded.']})
    max_bytes = settings.UPLOAD_MAX_MB * 1024 * 1024
    if upload.size > max_bytes:
        raise ValidationError({'file': [f'File too large (max {settings.UPLOAD_MAX_MB} MB).']})
    mime = getattr(upload, 'content_type', '') or ''
    if mime not in settings.ALLOWED_UPLOAD_TYPES:
        raise ValidationError({'file': [f'Unsupported file type: {mime or "unknown"}.']})


def store_upload(user: User, upload) -> UploadedFile:
    validate_upload(upload)
    obj = UploadedFile(user=user, filename=upload.name[:255], mime=upload.content_type, size=upload.size)
    obj.file.save(upload.name, upload, save=False)
    obj.save()
    logger.info('stored upload %s for user %s (%d bytes)', obj.id, user.id, obj.size)
    return obj


def file_dict(obj: UploadedFile, request=None) -> dict:
    url = obj.file.url
    if request is not None:
        url = request.build_absolute_uri(url)
    return {'id': obj.id, 'url': url, 'filename': obj.filename, 'mime': obj.mime, 'size': obj.size}


def delete_upload(actor: User, file_id: int) -> None:
    obj = get_object_or_404(UploadedFile, pk=file_id)
    if obj.user_id != actor.id and not is_admin(actor):
        raise PermissionDenied('Not allowed to delete this file.')
    obj.file.delete(save=False)
    obj.delete()
