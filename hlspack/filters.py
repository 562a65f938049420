from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from hlspack.ladder import LOW, LOWER, SUPER_LOW, RenditionSpec, round_half_up

SEGMENT_SECONDS = 4
ASSUMED_FPS = 30
GOP_SIZE = SEGMENT_SECONDS * ASSUMED_FPS
CAPPED_FPS = 24

# Tiers whose output frame rate is capped
FPS_CAPPED_TIERS = (LOWER, SUPER_LOW)

TIER_SETTINGS: Dict[str, Dict[str, Any]] = {
    LOW: {"crf": 18, "preset": "medium", "audio_bitrate": "96k"},
    LOWER: {"crf": 23, "preset": "veryfast", "audio_bitrate": "64k"},
    SUPER_LOW: {"crf": 25, "preset": "veryfast", "audio_bitrate": "48k"},
}

X264_PARAMS = ":".join([
    "no-fast-pskip=1",
    "no-dct-decimate=1",
    "aq-mode=1",
    "aq-strength=0.8",
    "psy-rd=1.0",
    "deblock=1:1",
    "me=hex",
    "subme=7",
    "trellis=2",
    "ref=3",
    "b-adapt=2",
    "bframes=3",
])


def display_dimensions(width: int, height: int) -> Tuple[int, int]:
    """Return the 16:9 box a ``width`` x ``height`` picture is letterboxed into.

    Used for both the pad filter and the RESOLUTION advertised in manifests.
    """
    if height > width:
        target_height = height
        target_width = round_half_up(height * 16 / 9)
    else:
        target_width = width
        target_height = round_half_up(width * 9 / 16)
    if target_width % 2:
        target_width += 1
    if target_height % 2:
        target_height += 1
    return target_width, target_height


@dataclass(frozen=True)
class FilterStep:
    name: str
    args: Tuple[Any, ...] = ()
    kwargs: Tuple[Tuple[str, Any], ...] = ()

    def render(self) -> str:
        params = [str(a) for a in self.args] + [f"{k}={v}" for k, v in self.kwargs]
        return f"{self.name}={':'.join(params)}" if params else self.name


@dataclass
class EncodeParameters:
    filters: List[FilterStep]
    output_args: Dict[str, Any] = field(default_factory=dict)

    @property
    def filter_chain(self) -> str:
        return render_filter_chain(self.filters)


def render_filter_chain(steps: List[FilterStep]) -> str:
    return ",".join(step.render() for step in steps)


def transpose_mode(rotation: int) -> int:
    # 1 = 90 degrees clockwise, 2 = 90 degrees counter-clockwise
    return 1 if rotation in (90, -270) else 2


def build_filter_steps(width: int, height: int, rotation: int = 0) -> List[FilterStep]:
    """Rotate, fit into ``width`` x ``height`` and pad to 16:9."""
    target_width, target_height = display_dimensions(width, height)
    steps: List[FilterStep] = []
    if rotation in (90, -90, 270, -270):
        steps.append(FilterStep("transpose", (transpose_mode(rotation),)))
    elif rotation in (180, -180):
        steps.append(FilterStep("hflip"))
        steps.append(FilterStep("vflip"))
    steps.extend([
        FilterStep("scale", (width, height), (("force_original_aspect_ratio", "decrease"),)),
        FilterStep(
            "pad",
            (target_width, target_height, "(ow-iw)/2", "(oh-ih)/2"),
            (("color", "black"),),
        ),
        FilterStep("setsar", (1, 1)),
    ])
    logging.debug("Calculated 16:9 dimensions: %dx%d for input %dx%d", target_width, target_height, width, height)
    return steps


def build_encode_parameters(rendition: RenditionSpec, rotation: int, segment_pattern: str) -> EncodeParameters:
    settings = TIER_SETTINGS[rendition.name]
    video_kbps = rendition.bitrate_kbps
    max_kbps = round_half_up(video_kbps * 1.5)

    output_args: Dict[str, Any] = {
        "c:v": "libx264",
        "crf": settings["crf"],
        "preset": settings["preset"],
        "g": GOP_SIZE,
        "keyint_min": round_half_up(GOP_SIZE / 2),
        "sc_threshold": 0,
        "b:v": f"{video_kbps}k",
        "maxrate": f"{max_kbps}k",
        "bufsize": f"{max_kbps * 2}k",
        "c:a": "aac",
        "b:a": settings["audio_bitrate"],
        "ac": 2,
        "ar": 44100,
        "movflags": "+faststart",
        "format": "hls",
        "hls_time": SEGMENT_SECONDS,
        "hls_list_size": 0,
        "hls_segment_type": "fmp4",
        "hls_playlist_type": "vod",
        "hls_flags": "independent_segments",
        "pix_fmt": "yuv420p",
        "hls_segment_filename": segment_pattern,
        "x264-params": X264_PARAMS,
    }
    if rendition.name in FPS_CAPPED_TIERS:
        output_args["r"] = CAPPED_FPS

    return EncodeParameters(build_filter_steps(rendition.width, rendition.height, rotation), output_args)
