import pytest

from hlspack.errors import ManifestWriteError
from hlspack.filters import display_dimensions
from hlspack.ladder import plan_ladder
from hlspack.playlist import (
    parse_master_playlist,
    render_master_playlist,
    render_reduced_playlist,
    write_playlists,
)


def test_master_playlist_text():
    text = render_master_playlist(plan_ladder(1920, 1080))
    assert text == "\n".join([
        "#EXTM3U",
        "#EXT-X-VERSION:4",
        "#EXT-X-STREAM-INF:BANDWIDTH=4000000,RESOLUTION=1344x756",
        "super_low/index.m3u8",
        "#EXT-X-STREAM-INF:BANDWIDTH=1000000,RESOLUTION=1536x864",
        "lower/index.m3u8",
        "#EXT-X-STREAM-INF:BANDWIDTH=3456000,RESOLUTION=1920x1080",
        "low/index.m3u8",
    ])


def test_reduced_playlist_keeps_lower_tiers_in_ladder_order():
    plan = plan_ladder(1920, 1080)
    variants = parse_master_playlist(render_reduced_playlist(plan))
    assert [name for name, _, _ in variants] == ["super_low", "lower"]


def test_portrait_resolution_is_pillarboxed():
    variants = parse_master_playlist(render_master_playlist(plan_ladder(480, 854)))
    assert variants[0] == ("super_low", 4000000, (1212, 682))
    assert variants[2] == ("low", 2000000, (1518, 854))


@pytest.mark.parametrize("size", [(1920, 1080), (480, 854), (1280, 536), (3840, 2160)])
def test_parse_reproduces_plan(size):
    plan = plan_ladder(*size)
    expected = [(r.name, r.bitrate_kbps * 1000, display_dimensions(r.width, r.height)) for r in plan]
    assert parse_master_playlist(render_master_playlist(plan)) == expected


def test_write_playlists(tmp_path):
    plan = plan_ladder(1280, 720)
    master, reduced = write_playlists(plan, tmp_path)
    assert master.name == "master.m3u8"
    assert reduced.name == "low_master.m3u8"
    assert master.read_text() == render_master_playlist(plan)
    # rewriting from the same plan gives the same bytes
    write_playlists(plan, tmp_path)
    assert master.read_text() == render_master_playlist(plan)
    assert reduced.read_text() == render_reduced_playlist(plan)


def test_write_playlists_missing_dir(tmp_path):
    with pytest.raises(ManifestWriteError):
        write_playlists(plan_ladder(1280, 720), tmp_path / "missing")
