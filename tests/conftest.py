"""
Shared fixtures.

No test runs real ffmpeg/ffprobe: `fake_tools` replaces subprocess.run with a
stand-in that writes the files the real tools would write.
"""
import json
import subprocess
from pathlib import Path

import pytest
from PIL import Image

from hls_service.celery import celery_app
from transcoding.presets import RENDITION_PRESETS


def get_preset(label):
    for preset in RENDITION_PRESETS:
        if preset.label == label:
            return preset
    raise KeyError(label)


def read_master_playlist(path):
    """Rendition labels referenced by a master playlist."""
    labels = []
    expect_uri = False
    for raw in Path(path).read_text().splitlines():
        line = raw.strip()
        if line.startswith("#EXT-X-STREAM-INF:"):
            expect_uri = True
        elif expect_uri and line and not line.startswith("#"):
            labels.append(line.split("/", 1)[0])
            expect_uri = False
    return labels


def probe_json(width=1920, height=1080, duration="30.0", rotation=None):
    video = {"index": 0, "codec_type": "video", "codec_name": "h264", "width": width, "height": height}
    if rotation is not None:
        video["side_data_list"] = [{"side_data_type": "Display Matrix", "rotation": rotation}]
    return {
        "format": {"format_name": "mov,mp4,m4a,3gp,3g2,mj2", "duration": duration},
        "streams": [video, {"index": 1, "codec_type": "audio", "codec_name": "aac"}],
    }


class FakeMediaTools:
    """Plays ffprobe and ffmpeg for the pipeline modules."""

    def __init__(self):
        self.probe = probe_json()
        self.probe_returncode = 0
        self.failing_renditions = set()
        self.dying_renditions = set()  # write a playlist, then fail
        self.frame_error = None
        self.thumbnail_fails = False
        self.calls = []

    @property
    def encoded_labels(self):
        return [Path(cmd[-1]).parent.name for cmd in self.calls if "hls" in cmd]

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        if "-show_streams" in cmd:
            return self._ffprobe(cmd)
        if "hls" in cmd:
            return self._encode(cmd)
        if "-frames:v" in cmd:
            return self._frame(cmd)
        raise AssertionError(f"unexpected command: {cmd}")

    def _ffprobe(self, cmd):
        if self.probe_returncode:
            return subprocess.CompletedProcess(cmd, self.probe_returncode, stdout="", stderr="Invalid data found when processing input")
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(self.probe), stderr="")

    def _encode(self, cmd):
        playlist = Path(cmd[-1])
        if playlist.parent.name in self.dying_renditions:
            self._write_rendition(playlist)
            raise subprocess.CalledProcessError(1, cmd, output=b"", stderr=b"Conversion failed!")
        if playlist.parent.name in self.failing_renditions:
            raise subprocess.CalledProcessError(1, cmd, output=b"", stderr=b"Error initializing output stream")
        self._write_rendition(playlist)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")

    def _write_rendition(self, playlist):
        (playlist.parent / "segment_000.ts").write_bytes(b"\x47" * 188)
        playlist.write_text("#EXTM3U\n#EXT-X-TARGETDURATION:6\n#EXTINF:6.0,\nsegment_000.ts\n#EXT-X-ENDLIST\n")

    def _frame(self, cmd):
        if self.frame_error is not None:
            raise self.frame_error
        if self.thumbnail_fails:
            raise subprocess.CalledProcessError(1, cmd, output=b"", stderr=b"Output file is empty")
        scale = cmd[cmd.index("-vf") + 1].split("=", 1)[1]
        w, h = (int(v) for v in scale.split(":"))
        if w < 0:
            # portrait frame scaled to height h
            w = (h * 9 // 16) // 2 * 2
        Image.new("RGB", (w, h), (200, 30, 30)).save(cmd[-1], format="JPEG")
        return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")


@pytest.fixture
def fake_tools(monkeypatch):
    tools = FakeMediaTools()
    monkeypatch.setattr(subprocess, "run", tools)
    return tools


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    settings.MEDIA_ROOT = root
    settings.HLS_PUBLISH_TO_S3 = False
    return root


@pytest.fixture(autouse=True)
def eager_celery():
    # the app reads Django settings under the CELERY namespace, so the
    # namespaced key is the one that takes effect
    previous = celery_app.conf.CELERY_TASK_ALWAYS_EAGER
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    yield
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = previous


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "upload.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path
