import subprocess

from conftest import get_preset
from transcoding.encoder import PLAYLIST_NAME, build_rendition_command, encode_rendition


def test_command_targets_preset(settings, tmp_path):
    settings.FFMPEG_BINARY = "/usr/local/bin/ffmpeg"
    settings.HLS_SEGMENT_SECONDS = 6
    preset = get_preset("720p")
    cmd = build_rendition_command("/in/video.mp4", preset, tmp_path / "720p")

    assert cmd[0] == "/usr/local/bin/ffmpeg"
    assert cmd[cmd.index("-i") + 1] == "/in/video.mp4"
    assert cmd[cmd.index("-b:v") + 1] == "2800k"
    assert cmd[cmd.index("-b:a") + 1] == "128k"
    assert cmd[cmd.index("-vf") + 1] == "scale=1280:720"
    assert cmd[cmd.index("-hls_time") + 1] == "6"
    assert cmd[cmd.index("-hls_list_size") + 1] == "0"
    assert cmd[cmd.index("-hls_segment_filename") + 1] == str(tmp_path / "720p" / "segment_%03d.ts")
    assert cmd[-1] == str(tmp_path / "720p" / PLAYLIST_NAME)


def test_successful_encode(fake_tools, source_file, tmp_path):
    outcome = encode_rendition(source_file, get_preset("480p"), tmp_path / "480p")

    assert outcome.succeeded
    assert outcome.label == "480p"
    assert outcome.playlist_path == tmp_path / "480p" / PLAYLIST_NAME
    assert outcome.playlist_path.is_file()


def test_encoder_error_is_reported_not_raised(fake_tools, source_file, tmp_path, caplog):
    fake_tools.failing_renditions = {"720p"}
    outcome = encode_rendition(source_file, get_preset("720p"), tmp_path / "720p")

    assert not outcome.succeeded
    assert outcome.playlist_path is None
    assert "Error initializing output stream" in outcome.error
    assert "Error transcoding 720p" in caplog.text


def test_timeout_is_reported_not_raised(monkeypatch, source_file, tmp_path):
    def slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", slow)
    outcome = encode_rendition(source_file, get_preset("360p"), tmp_path / "360p")
    assert not outcome.succeeded
    assert outcome.error == "timeout"


def test_clean_exit_without_playlist_is_a_failure(monkeypatch, source_file, tmp_path):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0))
    outcome = encode_rendition(source_file, get_preset("240p"), tmp_path / "240p")
    assert not outcome.succeeded
    assert outcome.error == "missing playlist"


def test_partial_output_is_removed_on_failure(fake_tools, source_file, tmp_path):
    fake_tools.dying_renditions = {"720p"}
    outcome = encode_rendition(source_file, get_preset("720p"), tmp_path / "720p")

    assert not outcome.succeeded
    assert "Conversion failed!" in outcome.error
    assert not (tmp_path / "720p").exists()


def test_stale_rendition_is_cleared_before_encoding(fake_tools, source_file, tmp_path):
    stale = tmp_path / "480p"
    stale.mkdir()
    (stale / "segment_999.ts").write_bytes(b"old")

    outcome = encode_rendition(source_file, get_preset("480p"), stale)

    assert outcome.succeeded
    assert sorted(p.name for p in stale.iterdir()) == [PLAYLIST_NAME, "segment_000.ts"]


def test_failed_rerun_leaves_no_playlist(fake_tools, source_file, tmp_path):
    rendition_dir = tmp_path / "1080p"
    assert encode_rendition(source_file, get_preset("1080p"), rendition_dir).succeeded

    fake_tools.failing_renditions = {"1080p"}
    outcome = encode_rendition(source_file, get_preset("1080p"), rendition_dir)

    assert not outcome.succeeded
    assert not (rendition_dir / PLAYLIST_NAME).exists()
