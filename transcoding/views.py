import logging
import shutil
from pathlib import Path

from django.conf import settings
from django.db.models import Count
from kombu.exceptions import OperationalError
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .manifest import MASTER_PLAYLIST_NAME
from .models import Video
from .s3 import delete_prefix, object_url, stream_key
from .serializers import (
    PipelineStatsSerializer,
    UploadCreateSerializer,
    UploadResponseSerializer,
    VideoSerializer,
)
from .tasks import cancel_transcode, enqueue_transcode, transcode_queue_depth
from .thumbnail import POSTER_NAME
from .utils import save_uploaded_file, stream_dir, stream_media_url

logger = logging.getLogger(__name__)


class UploadAndCreateVideoView(views.APIView):
    """
    Accepts a video upload, stores it under MEDIA_ROOT/uploads, creates a
    `processing` record and enqueues the transcode job. Returns at once;
    clients poll the detail view for `ready` / `failed`.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = UploadCreateSerializer(data=request.data)
        if not ser.is_valid():
            bad_type = any(
                getattr(e, "code", None) == "unsupported_media_type"
                for e in ser.errors.get("file", [])
            )
            code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE if bad_type else status.HTTP_400_BAD_REQUEST
            return Response(ser.errors, status=code)

        upload = ser.validated_data["file"]
        source_path = save_uploaded_file(upload)

        video = Video(title=ser.validated_data.get("title") or upload.name, source_path=str(source_path))
        video.output_dir = str(stream_dir(video.id))
        video.save()

        try:
            enqueue_transcode(video)  # background processing
        except OperationalError as e:
            # no job will ever settle this record, so drop it with its upload
            logger.error("[%s] Could not queue transcoding: %s", video.id, e)
            video.delete()
            source_path.unlink(missing_ok=True)
            return Response(
                {"detail": "Transcoding queue unavailable, try again later"},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        logger.info("[%s] Upload stored at %s, transcoding queued", video.id, source_path)

        out = UploadResponseSerializer({
            "video_id": video.id,
            "status": Video.Status.PROCESSING,
            "message": "Upload successful, processing started",
        }).data
        return Response(out, status=status.HTTP_202_ACCEPTED)


class VideoDetailView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def _get(self, video_id):
        try:
            return Video.objects.get(pk=video_id)
        except Video.DoesNotExist:
            return None

    def _asset_url(self, request, video: Video, rel: str) -> str:
        if video.published:
            return object_url(stream_key(video.id, rel))
        return request.build_absolute_uri(stream_media_url(video.id, rel))

    def get(self, request, video_id):
        video = self._get(video_id)
        if video is None:
            return Response({"detail": "Not found"}, status=404)

        data = VideoSerializer(video).data
        data["master_url"] = None
        if video.status == Video.Status.READY:
            data["master_url"] = self._asset_url(request, video, MASTER_PLAYLIST_NAME)
            if video.poster_url.endswith(POSTER_NAME):
                data["poster_url"] = self._asset_url(request, video, POSTER_NAME)
        return Response(data)

    def delete(self, request, video_id):
        """Cancel an in-flight job and remove the record with everything it produced."""
        video = self._get(video_id)
        if video is None:
            return Response({"detail": "Not found"}, status=404)

        cancel_transcode(video)

        shutil.rmtree(video.output_dir, ignore_errors=True)
        Path(video.source_path).unlink(missing_ok=True)
        if video.published:
            delete_prefix(stream_key(video.id))

        video.delete()
        logger.info("[%s] Video deleted", video_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PipelineStatsView(views.APIView):
    """Queue depth of the transcode queue and record counts per status."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        counts = {s: 0 for s in Video.Status.values}
        for row in Video.objects.values("status").annotate(n=Count("id")):
            counts[row["status"]] = row["n"]

        out = PipelineStatsSerializer({
            "queue": settings.TRANSCODE_QUEUE,
            "queue_depth": transcode_queue_depth(),
            "max_concurrent_jobs": settings.TRANSCODE_MAX_CONCURRENT_JOBS,
            "videos": counts,
        }).data
        return Response(out)
