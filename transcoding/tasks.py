import logging
from typing import Optional

from celery import current_app, shared_task
from django.conf import settings
from django.utils import timezone
from kombu.exceptions import ChannelError, OperationalError

from .models import Video
from .pipeline import transcode
from .s3 import stream_key, upload_dir
from .thumbnail import POSTER_NAME
from .utils import stream_media_url

logger = logging.getLogger(__name__)


def _update(video_id, **fields) -> bool:
    """Write terminal fields on the record; False if it was deleted meanwhile."""
    if "error" in fields and fields["error"]:
        fields["error"] = fields["error"][:4000]
    fields["updated_at"] = timezone.now()
    return Video.objects.filter(pk=video_id).update(**fields) > 0


@shared_task(bind=True)
def transcode_video(self, video_id: str):
    try:
        video = Video.objects.get(pk=video_id)
    except Video.DoesNotExist:
        logger.warning("[%s] Video deleted before transcoding started", video_id)
        return None

    logger.info("[%s] Transcoding %s (task %s)", video_id, video.source_path, self.request.id)
    try:
        result = transcode(video.source_path, video.output_dir, video.id)

        published = False
        if settings.HLS_PUBLISH_TO_S3:
            count = upload_dir(video.output_dir, stream_key(video.id))
            logger.info("[%s] Published %d file(s) to s3://%s/%s", video_id, count, settings.S3_BUCKET, stream_key(video.id))
            published = True

    except Exception as e:
        logger.exception("[%s] Transcoding failed", video_id)
        _update(video_id, status=Video.Status.FAILED, error=str(e) or e.__class__.__name__)
        raise

    fields = {
        "status": Video.Status.READY,
        "renditions": result.renditions,
        "published": published,
        "error": "",
    }
    if result.poster_path is not None:
        fields["poster_url"] = stream_media_url(video.id, POSTER_NAME)

    if not _update(video_id, **fields):
        logger.warning("[%s] Video deleted while transcoding; result discarded", video_id)
    else:
        logger.info("[%s] Transcoding finished: %s", video_id, result.renditions)

    return {
        "video_id": str(video_id),
        "renditions": result.renditions,
        "poster": result.poster_path is not None,
    }


def enqueue_transcode(video: Video) -> str:
    """Hand the job to the worker pool and remember its task id for cancellation."""
    async_result = transcode_video.apply_async(args=[str(video.id)])
    Video.objects.filter(pk=video.pk).update(task_id=async_result.id)
    return async_result.id


def cancel_transcode(video: Video):
    if video.status == Video.Status.PROCESSING and video.task_id:
        logger.info("[%s] Revoking task %s", video.id, video.task_id)
        current_app.control.revoke(video.task_id, terminate=True)


def transcode_queue_depth() -> Optional[int]:
    """Jobs waiting in the broker for a free worker slot; None if the broker is unreachable."""
    try:
        with current_app.connection_for_read() as conn:
            ok = conn.default_channel.queue_declare(queue=settings.TRANSCODE_QUEUE, passive=True)
            return ok.message_count
    except ChannelError:
        # Redis drops the key of an empty queue
        return 0
    except OperationalError as e:
        logger.warning("Broker unreachable for queue depth: %s", e)
        return None
