"""
Source probing with ffprobe.

probe_source() never raises for a bad source: a file ffprobe cannot read is
reported as a zero descriptor so the pipeline carries on with an unknown
resolution.
"""
import json
import logging
import subprocess
from dataclasses import dataclass

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDescriptor:
    duration: int = 0  # whole seconds
    width: int = 0     # after rotation correction
    height: int = 0
    rotation: int = 0

    @property
    def is_portrait(self) -> bool:
        return 0 < self.width <= self.height


UNKNOWN_SOURCE = SourceDescriptor()


def _rotation_of(stream: dict) -> int:
    """Rotation in degrees from the legacy `rotate` tag or the display matrix side data."""
    tags = stream.get("tags") or {}
    if "rotate" in tags:
        try:
            return int(float(tags["rotate"]))
        except (TypeError, ValueError):
            return 0
    for side_data in stream.get("side_data_list") or []:
        if "rotation" in side_data:
            try:
                return int(float(side_data["rotation"]))
            except (TypeError, ValueError):
                return 0
    return 0


def parse_probe_output(raw: dict) -> SourceDescriptor:
    """Build a SourceDescriptor from ffprobe's JSON (`-show_format -show_streams`)."""
    try:
        duration = round(float((raw.get("format") or {}).get("duration") or 0))
    except (TypeError, ValueError):
        duration = 0

    video_stream = next(
        (s for s in raw.get("streams") or [] if s.get("codec_type") == "video"),
        None,
    )
    if video_stream is None:
        return SourceDescriptor(duration=max(duration, 0))

    width = int(video_stream.get("width") or 0)
    height = int(video_stream.get("height") or 0)
    rotation = _rotation_of(video_stream)
    if abs(rotation) % 180 == 90:
        width, height = height, width

    return SourceDescriptor(duration=max(duration, 0), width=width, height=height, rotation=rotation)


def probe_source(path, *, log_prefix: str = "") -> SourceDescriptor:
    cmd = [
        settings.FFPROBE_BINARY,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=settings.FFPROBE_TIMEOUT)
    except subprocess.TimeoutExpired:
        logger.error("%sffprobe timed out after %ss for %s", log_prefix, settings.FFPROBE_TIMEOUT, path)
        return UNKNOWN_SOURCE
    except OSError as e:
        logger.error("%sCould not run ffprobe (%s): %s", log_prefix, settings.FFPROBE_BINARY, e)
        return UNKNOWN_SOURCE

    if result.returncode != 0:
        logger.error(
            "%sffprobe failed (code %s) for %s: %s",
            log_prefix, result.returncode, path, (result.stderr or "").strip()[-500:],
        )
        return UNKNOWN_SOURCE

    try:
        raw = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        logger.error("%sUnparseable ffprobe output for %s: %s", log_prefix, path, e)
        return UNKNOWN_SOURCE

    source = parse_probe_output(raw)
    logger.info(
        "%sProbed %s: %sx%s, %ss, rotation %s",
        log_prefix, path, source.width, source.height, source.duration, source.rotation,
    )
    return source
