import uuid
from django.db import models

from .pipeline import Stage


class Job(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING"
        STARTED = "STARTED"
        SUCCESS = "SUCCESS"
        FAILURE = "FAILURE"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_path = models.CharField(max_length=512)       # absolute path of the received upload
    original_filename = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    stage = models.CharField(
        max_length=16,
        choices=[(s.value, s.value) for s in Stage],
        default=Stage.RECEIVED.value,
    )
    failed_stage = models.CharField(max_length=16, blank=True, default="")
    progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    warnings = models.JSONField(default=list, blank=True)
    error = models.TextField(blank=True, default="")
    video = models.ForeignKey("Video", null=True, blank=True, on_delete=models.SET_NULL, related_name="jobs")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)


class Video(models.Model):
    """Catalog record: the only state that outlives a job."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    source_key = models.CharField(max_length=1024)
    thumbnail_key = models.CharField(max_length=1024, blank=True, default="")
    manifest_key = models.CharField(max_length=1024)
    renditions = models.JSONField(default=list, blank=True)   # [{resolution, bandwidth, size}]
    metadata = models.JSONField(default=dict, blank=True)     # {} when the probe failed
    warnings = models.JSONField(default=list, blank=True)
    object_keys = models.JSONField(default=list, blank=True)  # every stored object of the package

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title
