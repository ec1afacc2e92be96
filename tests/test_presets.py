import pytest

from conftest import get_preset
from transcoding.presets import (
    HEIGHT_TOLERANCE,
    RENDITION_PRESETS,
    RenditionPreset,
    select_ladder,
)
from transcoding.probe import SourceDescriptor


def labels(ladder):
    return [p.label for p in ladder]


def test_catalog_is_ordered_by_descending_height():
    heights = [p.height for p in RENDITION_PRESETS]
    assert heights == sorted(heights, reverse=True)
    assert labels(RENDITION_PRESETS)[0] == "2160p"
    assert labels(RENDITION_PRESETS)[-1] == "240p"


def test_preset_bandwidth_and_resolution():
    preset = get_preset("1080p")
    assert preset.bandwidth == 5_000_000
    assert preset.resolution == "1920x1080"


def test_unknown_height_selects_full_catalog():
    assert select_ladder(SourceDescriptor()) == list(RENDITION_PRESETS)


def test_1080p_source():
    ladder = select_ladder(SourceDescriptor(duration=30, width=1920, height=1080))
    assert labels(ladder) == ["1080p", "720p", "480p", "360p", "240p"]


def test_tolerance_keeps_preset_slightly_above_source():
    ladder = select_ladder(SourceDescriptor(width=1916, height=1078))
    assert labels(ladder)[0] == "1080p"


def test_small_source_falls_back_to_lowest_preset():
    ladder = select_ladder(SourceDescriptor(duration=10, width=200, height=120))
    assert labels(ladder) == ["240p"]


def test_320x240_source_gets_240p():
    assert labels(select_ladder(SourceDescriptor(width=320, height=240))) == ["240p"]


@pytest.mark.parametrize("height", [1, 100, 239, 250, 359, 480, 719, 1080, 1441, 2160, 4320])
def test_ladder_never_upscales_and_is_never_empty(height):
    ladder = select_ladder(SourceDescriptor(width=height * 16 // 9, height=height))
    assert ladder
    if ladder != [RENDITION_PRESETS[-1]]:
        assert all(p.height <= height + HEIGHT_TOLERANCE for p in ladder)


def test_custom_catalog_must_be_ordered():
    from transcoding.presets import _ordered

    with pytest.raises(ValueError):
        _ordered(
            RenditionPreset("360p", 640, 360, "800k", "96k"),
            RenditionPreset("720p", 1280, 720, "2800k", "128k"),
        )
