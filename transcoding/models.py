import uuid

from django.db import models


class Video(models.Model):
    class Status(models.TextChoices):
        PROCESSING = "processing"
        READY = "ready"
        FAILED = "failed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255, blank=True, default="")
    source_path = models.CharField(max_length=512)    # absolute path of the uploaded file
    output_dir = models.CharField(max_length=512)     # MEDIA_ROOT/streams/<id>
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PROCESSING)
    duration = models.PositiveIntegerField(default=0)  # seconds, written by the pipeline
    poster_url = models.CharField(max_length=512, blank=True, default="")
    renditions = models.JSONField(default=list, blank=True)  # labels listed in master.m3u8
    published = models.BooleanField(default=False)     # HLS tree uploaded to S3/MinIO
    error = models.TextField(blank=True, default="")
    task_id = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title or self.id} ({self.status})"
