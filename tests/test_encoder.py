import ffmpeg
import pytest

from hlspack.encoder import EncodeJob, RenditionEncoder
from hlspack.errors import EncodeError
from hlspack.ladder import RenditionSpec
from hlspack.probe import SourceGeometry


def _job(tmp_path, name="lower", rotation=0, has_audio=True):
    return EncodeJob(
        RenditionSpec(name, 1536, 864, 1000),
        tmp_path / "input.mp4",
        tmp_path / name,
        SourceGeometry(1920, 1080, rotation, has_audio),
    )


def test_command_line(tmp_path):
    args = ffmpeg.compile(RenditionEncoder().build(_job(tmp_path, rotation=180)))
    cmd = " ".join(args)
    assert "hflip" in cmd and "vflip" in cmd
    assert "scale=1536:864:force_original_aspect_ratio=decrease" in cmd
    assert "pad=1536:864:(ow-iw)/2:(oh-ih)/2:color=black" in cmd
    assert "setsar=1:1" in cmd
    assert args[args.index("-b:v") + 1] == "1000k"
    assert args[args.index("-maxrate") + 1] == "1500k"
    assert args[args.index("-r") + 1] == "24"
    assert args[args.index("-hls_segment_filename") + 1] == str(tmp_path / "lower" / "segment_%03d.m4s")
    assert str(tmp_path / "lower" / "index.m3u8") in args
    assert "0:a:0" in args


def test_video_only_source_maps_no_audio(tmp_path):
    args = ffmpeg.compile(RenditionEncoder().build(_job(tmp_path, has_audio=False)))
    assert "0:a:0" not in args


def test_encode_collects_segments(tmp_path, monkeypatch):
    def fake_run(stream, **kwargs):
        out = tmp_path / "lower"
        (out / "index.m3u8").write_text("#EXTM3U")
        (out / "init.mp4").write_bytes(b"\x00")
        for i in range(3):
            (out / f"segment_{i:03d}.m4s").write_bytes(b"\x00")
        return b"", b""

    monkeypatch.setattr(ffmpeg, "run", fake_run)
    output = RenditionEncoder().encode(_job(tmp_path))
    assert output.name == "lower"
    assert output.manifest_relative_path == "lower/index.m3u8"
    assert [p.name for p in output.segment_file_paths] == [
        "init.mp4", "segment_000.m4s", "segment_001.m4s", "segment_002.m4s",
    ]


def test_encode_failure_carries_stderr(tmp_path, monkeypatch):
    def fake_run(stream, **kwargs):
        raise ffmpeg.Error("ffmpeg", b"", b"Invalid data found when processing input")

    monkeypatch.setattr(ffmpeg, "run", fake_run)
    with pytest.raises(EncodeError) as excinfo:
        RenditionEncoder().encode(_job(tmp_path, name="low"))
    assert excinfo.value.rendition == "low"
    assert "Invalid data" in excinfo.value.stderr


def test_missing_playlist_is_an_error(tmp_path, monkeypatch):
    monkeypatch.setattr(ffmpeg, "run", lambda stream, **kwargs: (b"", b""))
    with pytest.raises(EncodeError):
        RenditionEncoder().encode(_job(tmp_path))
