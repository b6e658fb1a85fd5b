import logging

from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .errors import StorageError
from .models import Job, Video
from .s3 import S3BlobStore, create_presigned_get, object_url
from .serializers import JobSerializer, UploadCreateSerializer, VideoSerializer
from .tasks import process_video
from .utils import save_uploaded_file

logger = logging.getLogger(__name__)


class UploadAndCreateJobView(views.APIView):
    """
    Accepts a video upload, stores it under UPLOAD_ROOT, creates a Job,
    and enqueues the Celery task that packages it.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = UploadCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        upload = ser.validated_data["video"]
        path = save_uploaded_file(upload)
        job = Job.objects.create(source_path=str(path), original_filename=upload.name)

        process_video.delay(str(job.id))  # queue background processing
        return Response({"job_id": str(job.id)}, status=status.HTTP_202_ACCEPTED)


class JobDetailView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)
        return Response(JobSerializer(job).data)


class VideoListView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response(VideoSerializer(Video.objects.all(), many=True).data)


class VideoDetailView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def _get(self, video_id):
        try:
            return Video.objects.get(pk=video_id)
        except Video.DoesNotExist:
            return None

    def get(self, request, video_id):
        video = self._get(video_id)
        if video is None:
            return Response({"detail": "Not found"}, status=404)

        data = VideoSerializer(video).data
        # Rendition playlists resolve relative to the master, so it gets a plain URL.
        data["manifest_url"] = object_url(video.manifest_key)
        data["source_url"] = create_presigned_get(video.source_key)
        data["thumbnail_url"] = create_presigned_get(video.thumbnail_key) if video.thumbnail_key else None
        return Response(data)

    def delete(self, request, video_id):
        video = self._get(video_id)
        if video is None:
            return Response({"detail": "Not found"}, status=404)

        store = S3BlobStore()
        leftover = []
        for key in video.object_keys or []:
            try:
                store.delete(key)
            except StorageError as e:
                logger.error("Could not delete %s for video %s: %s", key, video.id, e)
                leftover.append(key)

        video.delete()
        return Response({"detail": "Video deleted", "undeleted_keys": leftover})
