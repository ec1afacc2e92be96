import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from django.conf import settings

from .presets import RenditionPreset

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"


@dataclass
class RenditionOutcome:
    preset: RenditionPreset
    succeeded: bool
    playlist_path: Optional[Path] = None
    error: str = ""

    @property
    def label(self) -> str:
        return self.preset.label


def build_rendition_command(source_path, preset: RenditionPreset, rendition_dir: Path) -> list:
    """ffmpeg invocation producing one HLS rendition (playlist + numbered segments) in rendition_dir."""
    return [
        settings.FFMPEG_BINARY,
        "-y",
        "-hide_banner",
        "-loglevel", settings.FFMPEG_LOGLEVEL,
        "-i", str(source_path),
        "-c:v", "libx264",
        "-b:v", preset.video_bitrate,
        "-c:a", "aac",
        "-b:a", preset.audio_bitrate,
        "-vf", f"scale={preset.width}:{preset.height}",
        "-f", "hls",
        "-hls_time", str(settings.HLS_SEGMENT_SECONDS),
        "-hls_list_size", "0",
        "-hls_segment_filename", str(rendition_dir / SEGMENT_PATTERN),
        str(rendition_dir / PLAYLIST_NAME),
    ]


def _discard(rendition_dir: Path):
    """Remove a rendition directory so no playlist of a failed run is left behind."""
    shutil.rmtree(rendition_dir, ignore_errors=True)


def encode_rendition(source_path, preset: RenditionPreset, rendition_dir, *, log_prefix: str = "") -> RenditionOutcome:
    """
    Encode one rendition. Failures are logged and reported in the outcome,
    never raised, so the caller can move on to the next preset.

    The rendition directory is emptied before the encode and removed again if
    the encode fails, so its playlist exists on disk only after a success.
    """
    rendition_dir = Path(rendition_dir)
    playlist = rendition_dir / PLAYLIST_NAME

    logger.info("%sStarting transcoding for %s...", log_prefix, preset.label)
    _discard(rendition_dir)
    try:
        rendition_dir.mkdir(parents=True, exist_ok=True)
        cmd = build_rendition_command(source_path, preset, rendition_dir)
        subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=settings.FFMPEG_TIMEOUT,
        )
    except subprocess.CalledProcessError as e:
        err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else str(e)
        logger.error("%sError transcoding %s: %s", log_prefix, preset.label, err.strip()[-2000:])
        _discard(rendition_dir)
        return RenditionOutcome(preset, succeeded=False, error=err[:4000])
    except subprocess.TimeoutExpired:
        logger.error("%sTranscoding %s timed out after %ss", log_prefix, preset.label, settings.FFMPEG_TIMEOUT)
        _discard(rendition_dir)
        return RenditionOutcome(preset, succeeded=False, error="timeout")
    except OSError as e:
        logger.error("%sCould not run ffmpeg for %s: %s", log_prefix, preset.label, e)
        _discard(rendition_dir)
        return RenditionOutcome(preset, succeeded=False, error=str(e))

    if not playlist.is_file():
        logger.error("%sffmpeg exited cleanly but wrote no playlist for %s", log_prefix, preset.label)
        _discard(rendition_dir)
        return RenditionOutcome(preset, succeeded=False, error="missing playlist")

    logger.info("%sFinished %s", log_prefix, preset.label)
    return RenditionOutcome(preset, succeeded=True, playlist_path=playlist)
