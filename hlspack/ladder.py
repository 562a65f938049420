from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

SUPER_LOW = "super_low"
LOWER = "lower"
LOW = "low"

# Manifest order of the ladder
TIERS: Tuple[str, ...] = (SUPER_LOW, LOWER, LOW)

HD_THRESHOLD = 720

# (scale when HD, scale otherwise)
TIER_SCALES: Dict[str, Tuple[float, float]] = {
    SUPER_LOW: (0.7, 0.8),
    LOWER: (0.8, 1.0),
    LOW: (1.0, 1.0),
}

# (min kbps, max kbps, pixels per kbps). Changing these changes the
# BANDWIDTH advertised to players.
BITRATE_CLAMPS_KBPS: Dict[str, Tuple[int, int, int]] = {
    SUPER_LOW: (4000, 10000, 300),
    LOWER: (1000, 3000, 1600),
    LOW: (2000, 6000, 600),
}


@dataclass(frozen=True)
class RenditionSpec:
    name: str
    width: int
    height: int
    bitrate_kbps: int

    @property
    def pixels(self) -> int:
        return self.width * self.height


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_portrait(width: int, height: int) -> bool:
    return height > width


def is_hd(width: int, height: int) -> bool:
    """HD is judged on the width of portrait sources and the height of landscape ones."""
    return (width if is_portrait(width, height) else height) >= HD_THRESHOLD


def tier_scale(name: str, hd: bool) -> float:
    hd_scale, sd_scale = TIER_SCALES[name]
    return hd_scale if hd else sd_scale


def _floor_even(value: int) -> int:
    return value if value % 2 == 0 else value - 1


def scale_dimensions(width: int, height: int, scale: float) -> Tuple[int, int]:
    """Scale keeping the source aspect ratio, rounding odd results down to even."""
    aspect_ratio = width / height
    new_width = round_half_up(width * scale)
    new_height = round_half_up(new_width / aspect_ratio)
    return _floor_even(new_width), _floor_even(new_height)


def calculate_bitrate(width: int, height: int, name: str) -> int:
    min_kbps, max_kbps, divisor = BITRATE_CLAMPS_KBPS[name]
    bitrate = max(min_kbps, min(max_kbps, (width * height) / divisor))
    return round_half_up(bitrate)


def plan_ladder(width: int, height: int) -> List[RenditionSpec]:
    """Return the super_low, lower and low renditions for an orientation-corrected source size."""
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid source size {width}x{height}")

    hd = is_hd(width, height)
    plan: List[RenditionSpec] = []
    for name in TIERS:
        new_width, new_height = scale_dimensions(width, height, tier_scale(name, hd))
        plan.append(RenditionSpec(name, new_width, new_height, calculate_bitrate(new_width, new_height, name)))

    logging.info(
        "Ladder for %dx%d (%s, %s): %s",
        width,
        height,
        "portrait" if is_portrait(width, height) else "landscape",
        "HD" if hd else "SD",
        ", ".join(f"{r.name}={r.width}x{r.height}@{r.bitrate_kbps}k" for r in plan),
    )
    return plan
