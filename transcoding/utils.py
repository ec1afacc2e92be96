import os, mimetypes
from pathlib import Path
from uuid import uuid4
from django.conf import settings

def save_uploaded_file(djangofile) -> Path:
    """Save to MEDIA_ROOT/uploads/<uuid>_<name> and return the absolute path."""
    uploads_dir = Path(settings.MEDIA_ROOT) / settings.UPLOADS_SUBDIR
    uploads_dir.mkdir(parents=True, exist_ok=True)
    safe_name = f"{uuid4().hex}_{os.path.basename(djangofile.name)}"
    dest = uploads_dir / safe_name
    with open(dest, "wb") as f:
        for chunk in djangofile.chunks():
            f.write(chunk)
    return dest

def is_video_upload(filename: str, content_type: str | None = None) -> bool:
    """Accept only the configured video extensions with a video/* type (declared or guessed)."""
    ext = Path(filename).suffix.lower().lstrip(".")
    if ext not in settings.UPLOAD_ALLOWED_EXTENSIONS:
        return False
    mime = content_type or mimetypes.guess_type(filename)[0] or ""
    return mime.startswith("video/")

def stream_dir(video_id) -> Path:
    """Output directory of one video's HLS tree."""
    return Path(settings.MEDIA_ROOT) / settings.STREAMS_SUBDIR / str(video_id)

def stream_media_url(video_id, rel: str) -> str:
    """URL of a file in the HLS tree as served from MEDIA_URL."""
    return f"{settings.MEDIA_URL}{settings.STREAMS_SUBDIR}/{video_id}/{rel}"
