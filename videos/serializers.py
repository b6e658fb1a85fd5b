from django.conf import settings
from rest_framework import serializers

from .models import Job, Video
from .utils import VIDEO_MIME_TYPES, video_mime_type


class JobSerializer(serializers.ModelSerializer):
    class Meta:
        model = Job
        fields = [
            "id",
            "original_filename",
            "status",
            "stage",
            "failed_stage",
            "progress",
            "warnings",
            "error",
            "video",
            "created_at",
            "updated_at",
        ]


class VideoSerializer(serializers.ModelSerializer):
    class Meta:
        model = Video
        fields = [
            "id",
            "title",
            "renditions",
            "metadata",
            "warnings",
            "created_at",
        ]


class UploadCreateSerializer(serializers.Serializer):
    video = serializers.FileField()

    def validate_video(self, value):
        """
        Accept only the containers the encoder is expected to handle,
        up to UPLOAD_MAX_BYTES.
        """
        if video_mime_type(value) is None:
            raise serializers.ValidationError(
                f"Invalid file type. Supported types: {', '.join(sorted(VIDEO_MIME_TYPES))}"
            )
        if value.size > settings.UPLOAD_MAX_BYTES:
            limit_mb = settings.UPLOAD_MAX_BYTES // (1024 * 1024)
            raise serializers.ValidationError(f"File too large. Maximum size is {limit_mb}MB")
        return value
