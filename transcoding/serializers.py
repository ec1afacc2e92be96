from django.conf import settings
from rest_framework import serializers

from .models import Video
from .utils import is_video_upload


class VideoSerializer(serializers.ModelSerializer):
    class Meta:
        model = Video
        fields = [
            "id",
            "title",
            "status",
            "duration",
            "poster_url",
            "renditions",
            "error",
            "created_at",
            "updated_at",
        ]


class UploadCreateSerializer(serializers.Serializer):
    file = serializers.FileField()
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def validate_file(self, value):
        if not is_video_upload(value.name, getattr(value, "content_type", None)):
            allowed = ", ".join(settings.UPLOAD_ALLOWED_EXTENSIONS)
            raise serializers.ValidationError(
                f"Invalid video file type. Allowed: {allowed}", code="unsupported_media_type"
            )
        return value


class UploadResponseSerializer(serializers.Serializer):
    video_id = serializers.UUIDField()
    status = serializers.CharField()
    message = serializers.CharField()


class PipelineStatsSerializer(serializers.Serializer):
    queue = serializers.CharField()
    queue_depth = serializers.IntegerField(allow_null=True)
    max_concurrent_jobs = serializers.IntegerField()
    videos = serializers.DictField(child=serializers.IntegerField())
