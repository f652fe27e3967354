"""Regional force blending.

A zone is a circle in normalized canvas space carrying its own weight per
force id. Where zones overlap a point, their weight maps are averaged by
falloff influence and the result replaces the forces' own weights.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from plotflow.field.geometry import Bounds, Point
from plotflow.field.rng import Mulberry32

# influence below this is treated as outside the zone
MIN_INFLUENCE = 0.001


class Falloff(Enum):
    SMOOTH = "smooth"
    LINEAR = "linear"
    SHARP = "sharp"


class ZonePlacement(Enum):
    RANDOM = "random"
    CORNERS = "corners"
    GRID = "grid"


def _smooth(dist: float, radius: float) -> float:
    t = min(1.0, dist / radius)
    x = 1 - t
    return x * x * (3 - 2 * x)


def _linear(dist: float, radius: float) -> float:
    return max(0.0, 1 - dist / radius)


def _sharp(dist: float, radius: float) -> float:
    t = min(1.0, dist / radius)
    return 1 - t * t * t * t


FALLOFF_FUNCTIONS: Dict[Falloff, Callable[[float, float], float]] = {
    Falloff.SMOOTH: _smooth,
    Falloff.LINEAR: _linear,
    Falloff.SHARP: _sharp,
}


@dataclass
class Zone:
    id: str
    anchor: Point
    radius: float
    falloff: Falloff = Falloff.SMOOTH
    force_weights: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.falloff, Falloff):
            self.falloff = Falloff(self.falloff)
        self.anchor = (float(self.anchor[0]), float(self.anchor[1]))

    def influence(self, nx: float, ny: float) -> float:
        if self.radius <= 0:
            return 0.0
        dx = nx - self.anchor[0]
        dy = ny - self.anchor[1]
        return FALLOFF_FUNCTIONS[self.falloff](math.sqrt(dx * dx + dy * dy), self.radius)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "anchor": list(self.anchor),
            "radius": self.radius,
            "falloff": self.falloff.value,
            "force_weights": dict(self.force_weights),
        }


def zone_from_dict(data: dict) -> Zone:
    anchor = data["anchor"]
    if isinstance(anchor, dict):
        anchor = (anchor["x"], anchor["y"])
    return Zone(
        id=data["id"],
        anchor=anchor,
        radius=float(data["radius"]),
        falloff=Falloff(data.get("falloff", "smooth")),
        force_weights={k: float(v) for k, v in data.get("force_weights", {}).items()},
    )


@dataclass
class ZoneParams:
    enabled: bool = False
    count: int = 3
    transition_width: float = 0.5
    placement: ZonePlacement = ZonePlacement.RANDOM

    def __post_init__(self):
        if not isinstance(self.placement, ZonePlacement):
            self.placement = ZonePlacement(self.placement)


def zone_influence(
    point: Point, bounds: Bounds, zones: Sequence[Zone], force_ids: Sequence[str]
) -> Optional[Dict[str, float]]:
    """Blend the weight maps of the zones influencing `point`.

    Returns None when no zone reaches the point. Otherwise every id in
    `force_ids` gets the influence-weighted mean of the zones' weights,
    with ids a zone does not list counting as 0.
    """
    if not zones:
        return None

    nx, ny = bounds.normalize(point[0], point[1])

    influences: List[Tuple[Zone, float]] = []
    total = 0.0
    for zone in zones:
        weight = zone.influence(nx, ny)
        if weight > MIN_INFLUENCE:
            influences.append((zone, weight))
            total += weight

    if total == 0:
        return None

    blended = {force_id: 0.0 for force_id in force_ids}
    for zone, weight in influences:
        norm_weight = weight / total
        for force_id, w in zone.force_weights.items():
            if force_id in blended:
                blended[force_id] += w * norm_weight
    return blended


# ---- zone generation ----

_CORNERS = [(0.2, 0.2), (0.8, 0.2), (0.2, 0.8), (0.8, 0.8), (0.5, 0.5)]
_THIRDS = [0.33, 0.5, 0.67]


def generate_zone_anchors(count: int, placement: ZonePlacement, rng: Mulberry32) -> List[Point]:
    anchors = []

    if placement is ZonePlacement.CORNERS:
        for cx, cy in _CORNERS[:count]:
            anchors.append((cx + (rng.next() - 0.5) * 0.1, cy + (rng.next() - 0.5) * 0.1))

    elif placement is ZonePlacement.GRID:
        cols = math.ceil(math.sqrt(count))
        rows = math.ceil(count / cols)
        for i in range(count):
            col = i % cols
            row = i // cols
            anchors.append((
                (col + 0.5) / cols + (rng.next() - 0.5) * 0.1,
                (row + 0.5) / rows + (rng.next() - 0.5) * 0.1,
            ))

    else:
        # biased toward rule-of-thirds intersections for the first few
        for i in range(count):
            if rng.next() < 0.6 and i < 4:
                x = _THIRDS[rng.randint(3)] + (rng.next() - 0.5) * 0.15
                y = _THIRDS[rng.randint(3)] + (rng.next() - 0.5) * 0.15
                anchors.append((x, y))
            else:
                anchors.append((0.1 + rng.next() * 0.8, 0.1 + rng.next() * 0.8))

    return anchors


def generate_zone_force_weights(force_ids: Sequence[str], rng: Mulberry32) -> Dict[str, float]:
    """Random weights with one clearly dominant force."""
    weights = {}
    shuffled = rng.shuffle(list(force_ids))

    for i, force_id in enumerate(shuffled):
        if i == 0:
            weights[force_id] = 0.7 + rng.next() * 0.3
        elif i == 1 and rng.next() < 0.3:
            weights[force_id] = 0.1 + rng.next() * 0.2
        else:
            weights[force_id] = rng.next() * 0.1

    return weights


def generate_zones(params: ZoneParams, force_ids: Sequence[str], rng: Mulberry32) -> List[Zone]:
    if not params.enabled or params.count == 0 or not force_ids:
        return []

    falloffs = [Falloff.SMOOTH, Falloff.SMOOTH, Falloff.LINEAR]
    zones = []
    for i, anchor in enumerate(generate_zone_anchors(params.count, params.placement, rng)):
        radius = (0.25 + rng.next() * 0.35) * params.transition_width * 2
        falloff = falloffs[rng.randint(len(falloffs))]
        zones.append(Zone(
            id=f"zone-{i}",
            anchor=anchor,
            radius=radius,
            falloff=falloff,
            force_weights=generate_zone_force_weights(force_ids, rng),
        ))
    return zones
