import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from celery.exceptions import SoftTimeLimitExceeded
from django.conf import settings
from PIL import Image, ImageFilter, ImageOps

from .probe import SourceDescriptor, UNKNOWN_SOURCE

logger = logging.getLogger(__name__)

POSTER_NAME = "thumbnail.jpg"


def _grab_frame(source_path, out_path: Path, scale: str):
    cmd = [
        settings.FFMPEG_BINARY,
        "-y",
        "-hide_banner",
        "-loglevel", settings.FFMPEG_LOGLEVEL,
        "-ss", str(settings.POSTER_SEEK_SECONDS),
        "-i", str(source_path),
        "-frames:v", "1",
        "-vf", scale,
        str(out_path),
    ]
    subprocess.run(
        cmd,
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        timeout=settings.THUMBNAIL_TIMEOUT,
    )
    if not out_path.is_file():
        raise RuntimeError("ffmpeg wrote no frame")


def letterbox_portrait(frame_path: Path, out_path: Path, size: tuple):
    """Center a portrait frame on a blurred, cover-cropped copy of itself."""
    frame = Image.open(frame_path).convert("RGB")

    background = ImageOps.fit(frame, size, method=Image.LANCZOS)
    background = background.filter(ImageFilter.GaussianBlur(radius=20))

    foreground = frame.copy()
    foreground.thumbnail(size, Image.LANCZOS)
    offset = ((size[0] - foreground.width) // 2, (size[1] - foreground.height) // 2)
    background.paste(foreground, offset)

    background.save(out_path, format="JPEG", quality=90)


def extract_poster(source_path, output_dir, source: SourceDescriptor = UNKNOWN_SOURCE, *, log_prefix: str = "") -> Optional[Path]:
    """
    Write output_dir/thumbnail.jpg from a frame near the 1 second mark.

    Best effort: any failure is logged and None is returned. Celery's soft
    time limit still propagates so the job is failed.
    """
    width, height = settings.POSTER_SIZE
    poster = Path(output_dir) / POSTER_NAME

    try:
        if source.is_portrait:
            with tempfile.TemporaryDirectory(dir=output_dir) as tmp:
                frame = Path(tmp) / "frame.jpg"
                _grab_frame(source_path, frame, f"scale=-2:{height}")
                letterbox_portrait(frame, poster, (width, height))
        else:
            _grab_frame(source_path, poster, f"scale={width}:{height}")
    except subprocess.CalledProcessError as e:
        err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else str(e)
        logger.error("%sError generating thumbnail: %s", log_prefix, err.strip()[-1000:])
        return None
    except subprocess.TimeoutExpired:
        logger.error("%sThumbnail generation timed out after %ss", log_prefix, settings.THUMBNAIL_TIMEOUT)
        return None
    except SoftTimeLimitExceeded:
        raise
    except Exception:
        logger.exception("%sFailed to generate thumbnail", log_prefix)
        return None

    logger.info("%sWrote poster %s", log_prefix, poster)
    return poster
