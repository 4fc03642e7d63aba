"""
Document storage helpers.

Uploaded lab reports and generated PDFs land in Django's default storage.
Every upload is checked against the configured size limit and MIME type
allow-list before anything is written.
"""
import logging
import mimetypes
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework.exceptions import ValidationError

from clinic.exceptions import BackendUnavailable

logger = logging.getLogger(__name__)


def _content_type(upload, content_type=None) -> str:
    ct = content_type or getattr(upload, 'content_type', None)
    if not ct:
        ct, _ = mimetypes.guess_type(getattr(upload, 'name', '') or '')
    return (ct or '').split(';')[0].strip().lower()


def validate_upload(upload, content_type=None) -> str:
    """Raise ``ValidationError`` unless the upload is small enough and of an allowed type."""
    if upload is None:
        raise ValidationError({'file': 'no file uploaded'})
    max_bytes = settings.UPLOAD_MAX_MB * 1024 * 1024
    if upload.size > max_bytes:
        raise ValidationError({'file': f'file exceeds {settings.UPLOAD_MAX_MB}MB limit'})
    ct = _content_type(upload, content_type)
    if ct not in settings.ALLOWED_UPLOAD_TYPES:
        raise ValidationError({'file': f'unsupported file type: {ct or "unknown"}'})
    return ct


def store_document(folder: str, upload, content_type=None) -> tuple[str, str]:
    """Save an upload under ``folder`` and return ``(name, url)``."""
    validate_upload(upload, content_type)
    ext = os.path.splitext(upload.name or '')[1]
    target = f"{folder.strip('/')}/{uuid.uuid4().hex}{ext}"
    try:
        name = default_storage.save(target, upload)
    except OSError as e:
        logger.error("storing %s failed: %s", target, e)
        raise BackendUnavailable('could not store document') from e
    return name, default_storage.url(name)


def replace_file(field_file, folder: str, upload, content_type=None) -> str:
    """Store ``upload`` under ``folder`` and point ``field_file`` at it.

    The owning instance is saved and the superseded file deleted; returns
    the public URL of the new file.
    """
    old_name = field_file.name
    name, url = store_document(folder, upload, content_type)
    field_file.name = name
    field_file.instance.save()
    if old_name and old_name != name:
        try:
            field_file.storage.delete(old_name)
        except OSError:
            logger.warning("could not remove superseded file %s", old_name)
    return url
