"""
Transcode pipeline: one uploaded file in, one HLS tree out.

    <output_dir>/
        master.m3u8
        thumbnail.jpg
        <label>/playlist.m3u8
        <label>/segment_000.ts ...

Stages run strictly in order: probe, ladder selection, one encode per
rendition (sequential, to bound CPU per job), master playlist, poster.
Probe, rendition and poster failures are absorbed; anything else raises.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from django.conf import settings

from .encoder import encode_rendition
from .exceptions import NoRenditionsProduced, SourceRejected
from .manifest import MASTER_PLAYLIST_NAME, write_master_playlist
from .models import Video
from .presets import HEIGHT_TOLERANCE, RENDITION_PRESETS, select_ladder
from .probe import SourceDescriptor, probe_source
from .thumbnail import extract_poster

logger = logging.getLogger(__name__)


@dataclass
class TranscodeResult:
    master_playlist: Path
    renditions: list = field(default_factory=list)  # labels listed in the master playlist
    poster_path: Optional[Path] = None
    source: SourceDescriptor = field(default_factory=SourceDescriptor)


def _save_duration(video_id, duration: int):
    Video.objects.filter(pk=video_id).update(duration=duration)


def _check_source_height(source: SourceDescriptor):
    # Short side, so portrait 4K is held to the same limit as landscape 4K
    limit = settings.TRANSCODE_MAX_SOURCE_HEIGHT
    short_side = min(source.width, source.height)
    if limit and short_side > limit + HEIGHT_TOLERANCE:
        raise SourceRejected(f"Source {source.width}x{source.height} exceeds the {limit}p limit")


def transcode(source_path, output_dir, video_id, presets=RENDITION_PRESETS) -> TranscodeResult:
    prefix = f"[{video_id}] "
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    source = probe_source(source_path, log_prefix=prefix)
    if source.duration:
        # Written before the job settles so the UI can show it while processing
        _save_duration(video_id, source.duration)

    _check_source_height(source)

    ladder = select_ladder(source, presets)
    logger.info("%sLadder: %s", prefix, [p.label for p in ladder])

    outcomes = [
        encode_rendition(source_path, preset, output_dir / preset.label, log_prefix=prefix)
        for preset in ladder
    ]

    if not any(o.succeeded for o in outcomes):
        # a master playlist from an earlier run would point at removed renditions
        (output_dir / MASTER_PLAYLIST_NAME).unlink(missing_ok=True)
        raise NoRenditionsProduced(f"All {len(outcomes)} rendition(s) failed to encode")

    listed = write_master_playlist(output_dir, outcomes)
    poster = extract_poster(source_path, output_dir, source, log_prefix=prefix)

    return TranscodeResult(
        master_playlist=output_dir / MASTER_PLAYLIST_NAME,
        renditions=listed,
        poster_path=poster,
        source=source,
    )
