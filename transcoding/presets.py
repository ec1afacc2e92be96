"""
Rendition presets and ladder selection.

RENDITION_PRESETS is the encoding ladder catalog, highest resolution first.
select_ladder() picks the presets worth producing for one source without
upscaling, and never returns an empty ladder.
"""
from dataclasses import dataclass

# Presets up to this many pixels taller than the source are still produced,
# so a 1078px source keeps its 1080p rendition.
HEIGHT_TOLERANCE = 10


@dataclass(frozen=True)
class RenditionPreset:
    label: str
    width: int
    height: int
    video_bitrate: str  # ffmpeg syntax, e.g. "5000k"
    audio_bitrate: str

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def bandwidth(self) -> int:
        """Video bitrate in bits per second, as advertised in the master playlist."""
        return int(self.video_bitrate.rstrip("kK")) * 1000


def _ordered(*presets: RenditionPreset) -> tuple:
    heights = [p.height for p in presets]
    if heights != sorted(heights, reverse=True) or len(set(heights)) != len(heights):
        raise ValueError("Rendition presets must be strictly ordered by descending height")
    return presets


RENDITION_PRESETS = _ordered(
    RenditionPreset("2160p", 3840, 2160, "15000k", "192k"),
    RenditionPreset("1440p", 2560, 1440, "8000k", "192k"),
    RenditionPreset("1080p", 1920, 1080, "5000k", "192k"),
    RenditionPreset("720p", 1280, 720, "2800k", "128k"),
    RenditionPreset("480p", 854, 480, "1400k", "128k"),
    RenditionPreset("360p", 640, 360, "800k", "96k"),
    RenditionPreset("240p", 426, 240, "400k", "64k"),
)


def select_ladder(source, presets=RENDITION_PRESETS) -> list:
    """
    Return the presets to encode for `source` (anything with a `height`).

    Unknown height (0) yields the whole catalog. Otherwise presets taller than
    the source (beyond HEIGHT_TOLERANCE) are dropped; if nothing is left the
    lowest preset is used alone.
    """
    if not presets:
        raise ValueError("No rendition presets configured")

    if source.height <= 0:
        return list(presets)

    ladder = [p for p in presets if p.height <= source.height + HEIGHT_TOLERANCE]
    if not ladder:
        ladder = [presets[-1]]
    return ladder
