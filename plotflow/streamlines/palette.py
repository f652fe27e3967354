import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from plotflow.field.geometry import Bounds, Point
from plotflow.field.noise import SimplexNoise
from plotflow.field.rng import Mulberry32

_HEX = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


class PaletteMode(Enum):
    SINGLE = "single"
    GRADIENT = "gradient"
    NOISE = "noise"
    PALETTE = "palette"


class GradientDirection(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    RADIAL = "radial"
    ANGULAR = "angular"


class PaletteSelection(Enum):
    RANDOM = "random"
    SEQUENTIAL = "sequential"
    POSITION = "position"


@dataclass
class ColorPalette:
    mode: PaletteMode = PaletteMode.SINGLE
    gradient_colors: List[str] = field(default_factory=lambda: ["#1a1a1a", "#4a9eff"])
    gradient_direction: GradientDirection = GradientDirection.VERTICAL
    noise_scale: float = 100.0
    noise_colors: List[str] = field(
        default_factory=lambda: ["#ff6b6b", "#4ecdc4", "#45b7d1", "#96ceb4", "#ffeaa7"]
    )
    palette_colors: List[str] = field(
        default_factory=lambda: ["#264653", "#2a9d8f", "#e9c46a", "#f4a261", "#e76f51"]
    )
    palette_selection: PaletteSelection = PaletteSelection.RANDOM

    def __post_init__(self):
        self.mode = PaletteMode(self.mode)
        self.gradient_direction = GradientDirection(self.gradient_direction)
        self.palette_selection = PaletteSelection(self.palette_selection)

    @classmethod
    def from_dict(cls, data: dict) -> "ColorPalette":
        return cls(**data)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    match = _HEX.match(color)
    if not match:
        return 0, 0, 0
    return tuple(int(part, 16) for part in match.groups())


def lerp_color(color1: str, color2: str, t: float) -> str:
    c1 = hex_to_rgb(color1)
    c2 = hex_to_rgb(color2)
    r, g, b = (_round_half_up(a + (b - a) * t) for a, b in zip(c1, c2))
    return f"rgb({r}, {g}, {b})"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def multi_lerp_color(colors: Sequence[str], t: float) -> str:
    if not colors:
        return "#000000"
    if len(colors) == 1:
        return colors[0]
    t = max(0.0, min(1.0, t))
    segments = len(colors) - 1
    segment = min(math.floor(t * segments), segments - 1)
    local_t = t * segments - segment
    return lerp_color(colors[segment], colors[segment + 1], local_t)


class LineColorizer:
    """Picks a colour for each accepted line from its center point.

    Random palette selection draws from the run RNG, so colouring takes
    part in the run's deterministic draw order.
    """

    def __init__(self, palette: Optional[ColorPalette], bounds: Bounds, rng: Mulberry32, seed: int):
        self.palette = palette
        self.bounds = bounds
        self.rng = rng
        self.noise2d = SimplexNoise(seed)
        self.line_index = 0

    def color(self, center: Point, fallback: str) -> str:
        color = self._pick(center, fallback)
        self.line_index += 1
        return color

    def _pick(self, center: Point, fallback: str) -> str:
        palette = self.palette
        if palette is None or palette.mode is PaletteMode.SINGLE:
            return fallback

        nx, ny = self.bounds.normalize(*center)

        if palette.mode is PaletteMode.GRADIENT:
            direction = palette.gradient_direction
            if direction is GradientDirection.HORIZONTAL:
                t = nx
            elif direction is GradientDirection.VERTICAL:
                t = ny
            elif direction is GradientDirection.RADIAL:
                t = min(1.0, math.hypot(nx - 0.5, ny - 0.5) * 2)
            else:
                t = (math.atan2(ny - 0.5, nx - 0.5) + math.pi) / (2 * math.pi)
            return multi_lerp_color(palette.gradient_colors, t)

        if palette.mode is PaletteMode.NOISE:
            scale = palette.noise_scale
            value = (self.noise2d(center[0] / scale, center[1] / scale) + 1) / 2
            return multi_lerp_color(palette.noise_colors, value)

        colors = palette.palette_colors
        if not colors:
            return fallback
        if palette.palette_selection is PaletteSelection.RANDOM:
            return colors[int(self.rng.next() * len(colors))]
        if palette.palette_selection is PaletteSelection.SEQUENTIAL:
            return colors[self.line_index % len(colors)]
        return colors[math.floor((nx + ny) / 2 * len(colors)) % len(colors)]
