from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import ffmpeg

from hlspack.errors import ProbeError

QUARTER_TURNS = {90, -90, 270, -270}


@dataclass(frozen=True)
class SourceGeometry:
    """Orientation-corrected source size.

    For quarter-turn rotations width and height are already swapped so that
    they describe the picture as it is meant to be watched.
    """
    width: int
    height: int
    rotation: int = 0
    has_audio: bool = True

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"invalid source size {self.width}x{self.height}")


def normalize_rotation(value: Any) -> int:
    """Map raw rotation metadata onto 0, 90, 180, 270 or -90."""
    try:
        degrees = int(round(float(value or 0)))
    except (TypeError, ValueError):
        logging.warning("Ignoring unreadable rotation value %r", value)
        return 0
    if degrees in (0, 90, 180, 270, -90):
        return degrees
    if degrees == -270:
        return 90
    if degrees == -180:
        return 180
    if degrees % 360 == 0:
        return 0
    logging.warning("Unsupported rotation %s, treating as 0", degrees)
    return 0


def _stream_rotation(stream: Dict[str, Any]) -> Any:
    if stream.get("rotation") is not None:
        return stream["rotation"]
    tags = stream.get("tags") or {}
    if tags.get("rotate") is not None:
        return tags["rotate"]
    # Display matrix rotation is counter-clockwise, the rotate tag clockwise
    for side_data in stream.get("side_data_list") or []:
        if side_data.get("rotation") is not None:
            try:
                return -float(side_data["rotation"])
            except (TypeError, ValueError):
                return side_data["rotation"]
    return 0


def probe_geometry(input_path: Path) -> SourceGeometry:
    """Probe the first video stream of ``input_path``."""
    try:
        info = ffmpeg.probe(str(input_path))
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
        raise ProbeError(f"ffprobe failed for {input_path}: {stderr}") from e

    streams = info.get("streams", [])
    video_stream: Optional[Dict[str, Any]] = next(
        (s for s in streams if s.get("codec_type") == "video"), None
    )
    if video_stream is None:
        raise ProbeError("No video stream found")

    raw_rotation = _stream_rotation(video_stream)
    width = int(video_stream.get("width") or 0)
    height = int(video_stream.get("height") or 0)
    if width <= 0 or height <= 0:
        raise ProbeError(f"Video stream in {input_path} has no usable size")

    metadata = {
        "width": width,
        "height": height,
        "displayAspectRatio": video_stream.get("display_aspect_ratio"),
        "sampleAspectRatio": video_stream.get("sample_aspect_ratio"),
        "rotation": raw_rotation,
    }
    logging.info("Video metadata: %s", json.dumps(metadata, indent=2))

    try:
        raw_degrees = int(round(float(raw_rotation or 0)))
    except (TypeError, ValueError):
        raw_degrees = 0
    if raw_degrees in QUARTER_TURNS:
        width, height = height, width

    return SourceGeometry(
        width=width,
        height=height,
        rotation=normalize_rotation(raw_rotation),
        has_audio=any(s.get("codec_type") == "audio" for s in streams),
    )
