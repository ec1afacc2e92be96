"""
Master playlist assembly.

Only renditions that encoded successfully and whose playlist is present on
disk when the master playlist is written are listed, in ladder order.
"""
import logging
from pathlib import Path

from .encoder import PLAYLIST_NAME

logger = logging.getLogger(__name__)

MASTER_PLAYLIST_NAME = "master.m3u8"
STREAM_INF = "#EXT-X-STREAM-INF:"


def write_master_playlist(output_dir, outcomes) -> list:
    """Write output_dir/master.m3u8 and return the labels it lists."""
    output_dir = Path(output_dir)
    lines = ["#EXTM3U", "#EXT-X-VERSION:3"]
    listed = []

    for outcome in outcomes:
        preset = outcome.preset
        relative = f"{preset.label}/{PLAYLIST_NAME}"
        if not outcome.succeeded or not (output_dir / relative).is_file():
            continue
        lines.append(f"{STREAM_INF}BANDWIDTH={preset.bandwidth},RESOLUTION={preset.resolution}")
        lines.append(relative)
        listed.append(preset.label)

    # Filesystem errors here are fatal to the job
    (output_dir / MASTER_PLAYLIST_NAME).write_text("\n".join(lines) + "\n")
    logger.info("Wrote %s with %d stream(s): %s", output_dir / MASTER_PLAYLIST_NAME, len(listed), listed)
    return listed
