import os
from django.conf import settings
from django.db import models
from django.utils import timezone
from blinkspace.models import TimeStampedModel
from blinkspace.validators import FileSizeValidator, MediaTypeValidator


def media_upload_path(instance, filename):
    """Store uploads as blinks/<millisecond timestamp><ext> under MEDIA_ROOT"""
    _, ext = os.path.splitext(filename)
    return f"blinks/{int(timezone.now().timestamp() * 1000)}{ext.lower()}"


class Blink(TimeStampedModel):
    """
    A short post, optionally carrying one image or video.
    """
    MEDIA_IMAGE = 'image'
    MEDIA_VIDEO = 'video'
    MEDIA_NONE = 'none'

    MEDIA_TYPES = (
        (MEDIA_IMAGE, 'Image'),
        (MEDIA_VIDEO, 'Video'),
        (MEDIA_NONE, 'None'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='blinks'
    )
    content = models.CharField(max_length=200, blank=True)
    likes = models.PositiveIntegerField(default=0)
    comments = models.JSONField(default=list, blank=True)
    media = models.FileField(
        upload_to=media_upload_path,
        blank=True,
        null=True,
        validators=[
            FileSizeValidator(settings.BLINK_MAX_MEDIA_MB),
            MediaTypeValidator(),
        ]
    )
    media_type = models.CharField(max_length=10, choices=MEDIA_TYPES, default=MEDIA_NONE)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_at'], name='blink_created_at_idx'),
        ]

    def __str__(self):
        return f"Blink {self.pk} by {self.user.email}"

    @staticmethod
    def media_type_for(content_type):
        """Map an upload content type onto MEDIA_TYPES"""
        if not content_type:
            return Blink.MEDIA_NONE
        if content_type.startswith('image/'):
            return Blink.MEDIA_IMAGE
        if content_type.startswith('video/'):
            return Blink.MEDIA_VIDEO
        return Blink.MEDIA_NONE
