from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from hlspack.config import MANIFEST_EXT
from hlspack.errors import ManifestWriteError
from hlspack.filters import display_dimensions
from hlspack.ladder import LOWER, SUPER_LOW, RenditionSpec

HEADER = ["#EXTM3U", "#EXT-X-VERSION:4"]

# Tiers offered to constrained-bandwidth clients
REDUCED_TIERS = (LOWER, SUPER_LOW)

_STREAM_INF = re.compile(r"^#EXT-X-STREAM-INF:BANDWIDTH=(\d+),RESOLUTION=(\d+)x(\d+)")


def _render(renditions: Iterable[RenditionSpec], ext: str) -> str:
    lines = list(HEADER)
    for rendition in renditions:
        width, height = display_dimensions(rendition.width, rendition.height)
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={rendition.bitrate_kbps * 1000},RESOLUTION={width}x{height}")
        lines.append(f"{rendition.name}/index.{ext}")
    return "\n".join(lines)


def render_master_playlist(plan: Sequence[RenditionSpec], ext: str = MANIFEST_EXT) -> str:
    return _render(plan, ext)


def render_reduced_playlist(plan: Sequence[RenditionSpec], ext: str = MANIFEST_EXT) -> str:
    """Like the master playlist but only with the lower and super_low tiers, in ladder order."""
    return _render((r for r in plan if r.name in REDUCED_TIERS), ext)


def write_playlists(plan: Sequence[RenditionSpec], output_dir: Path, ext: str = MANIFEST_EXT) -> Tuple[Path, Path]:
    master_path = output_dir / f"master.{ext}"
    reduced_path = output_dir / f"low_master.{ext}"
    try:
        master_path.write_text(render_master_playlist(plan, ext), encoding="utf-8")
        logging.info("Master playlist created at %s", master_path)
        reduced_path.write_text(render_reduced_playlist(plan, ext), encoding="utf-8")
        logging.info("Low master playlist created at %s", reduced_path)
    except OSError as e:
        raise ManifestWriteError(f"could not write playlists in {output_dir}: {e}") from e
    return master_path, reduced_path


def parse_master_playlist(text: str) -> List[Tuple[str, int, Tuple[int, int]]]:
    """Return (name, bandwidth, (width, height)) for each variant, in playlist order."""
    variants: List[Tuple[str, int, Tuple[int, int]]] = []
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for i, line in enumerate(lines):
        m = _STREAM_INF.match(line)
        if not m or i + 1 >= len(lines):
            continue
        name = lines[i + 1].split("/", 1)[0]
        variants.append((name, int(m.group(1)), (int(m.group(2)), int(m.group(3)))))
    return variants
