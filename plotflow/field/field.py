import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from plotflow.field.forces import (
    CircularForce,
    Force,
    FormulaForce,
    NoiseForce,
    evaluate_circular_force,
    evaluate_noise_force,
    resolve,
)
from plotflow.field.formula import FormulaEvaluator
from plotflow.field.geometry import Bounds, Point
from plotflow.field.noise import SimplexNoise
from plotflow.field.rng import Mulberry32
from plotflow.field.zones import Zone, zone_influence

# combined vectors shorter than this count as cancelled out
MIN_MAGNITUDE = 0.01

WARP_SCALE = 100.0
WARP_AMPLITUDE = 50.0
TWIST_FALLOFF = 500.0
TURBULENCE_SCALE = 20.0


@dataclass
class GlobalDeformation:
    """Deformation applied to every sampled point and to the final angle.

    Parameters
    ----------
    scale : float
        Field scale, exposed to formulas as `scale`.
    warp : float
        Domain warp intensity in [0, 1].
    twist : float
        Rotation around the field center in degrees, growing with distance.
    turbulence : float
        High frequency noise added to the combined angle, in [0, 1].
    """

    scale: float = 200.0
    warp: float = 0.0
    twist: float = 0.0
    turbulence: float = 0.0

    def __post_init__(self):
        if not 0 <= self.warp <= 1:
            raise ValueError(f"warp must be in [0, 1], got {self.warp}")
        if not 0 <= self.turbulence <= 1:
            raise ValueError(f"turbulence must be in [0, 1], got {self.turbulence}")


def apply_domain_warp(x: float, y: float, deformation: GlobalDeformation, noise2d) -> Point:
    if deformation.warp == 0:
        return x, y
    warp_x = noise2d(x / WARP_SCALE, y / WARP_SCALE) * deformation.warp * WARP_AMPLITUDE
    warp_y = noise2d(x / WARP_SCALE + 100, y / WARP_SCALE + 100) * deformation.warp * WARP_AMPLITUDE
    return x + warp_x, y + warp_y


def apply_twist(x: float, y: float, bounds: Bounds, deformation: GlobalDeformation) -> Point:
    if deformation.twist == 0:
        return x, y
    cx, cy = bounds.center
    dx = x - cx
    dy = y - cy
    dist = math.sqrt(dx * dx + dy * dy)
    angle = math.atan2(dy, dx)
    twist_angle = (deformation.twist * math.pi / 180) * (dist / TWIST_FALLOFF)
    return cx + dist * math.cos(angle + twist_angle), cy + dist * math.sin(angle + twist_angle)


def apply_all_transforms(x: float, y: float, bounds: Bounds, deformation: GlobalDeformation, noise2d) -> Point:
    x, y = apply_domain_warp(x, y, deformation, noise2d)
    return apply_twist(x, y, bounds, deformation)


def create_formula_context(point: Point, bounds: Bounds, deformation: GlobalDeformation, noise2d) -> Dict[str, object]:
    cx, cy = bounds.center
    dx = point[0] - cx
    dy = point[1] - cy
    return {
        "x": point[0],
        "y": point[1],
        "nx": (point[0] - bounds.x) / bounds.width,
        "ny": (point[1] - bounds.y) / bounds.height,
        "scale": deformation.scale,
        "dist": math.sqrt(dx * dx + dy * dy),
        "angle": math.atan2(dy, dx),
        "warp": deformation.warp,
        "twist": deformation.twist,
        "turbulence": deformation.turbulence,
        "noise": lambda nx, ny: noise2d(nx / 100, ny / 100),
        "PI": math.pi,
        "TAU": math.pi * 2,
    }


class VectorField:
    """Flow direction at any point of the canvas.

    Combines the enabled forces by summing unit vectors scaled by weight,
    so opposing forces cancel instead of averaging to a spurious angle.
    Built once per generation run; the only state that changes afterwards
    is the RNG used for range values and the last-angle fallback.

    Parameters
    ----------
    forces : sequence of Force
    deformation : GlobalDeformation
    bounds : Bounds
        Full canvas; centers and normalized coordinates refer to it.
    seed : int
        Seeds the noise source; `seed + 1` seeds the range RNG.
    zones : sequence of Zone, optional
    """

    def __init__(
        self,
        forces: Sequence[Force],
        deformation: Optional[GlobalDeformation] = None,
        bounds: Bounds = Bounds(0, 0, 800, 600),
        seed: int = 0,
        zones: Optional[Sequence[Zone]] = None,
    ):
        self.forces: List[Force] = list(forces)
        self.deformation = deformation or GlobalDeformation()
        self.bounds = bounds
        self.seed = seed
        self.zones: List[Zone] = list(zones or [])
        self.noise2d = SimplexNoise(seed)
        self.rng = Mulberry32(seed + 1)
        self.formulas = FormulaEvaluator()
        self.last_angle = 0.0
        self._force_ids = [f.id for f in self.forces]
        self._uses_context = any(isinstance(f, FormulaForce) for f in self.forces)

    @property
    def active_forces(self) -> List[Force]:
        return [f for f in self.forces if f.enabled]

    def zone_weights(self, point: Point) -> Optional[Dict[str, float]]:
        if not self.zones:
            return None
        return zone_influence(point, self.bounds, self.zones, self._force_ids)

    def _force_angle(self, force: Force, point: Point, context) -> float:
        if isinstance(force, NoiseForce):
            return evaluate_noise_force(point[0], point[1], force, self.noise2d, self.rng)
        if isinstance(force, CircularForce):
            return evaluate_circular_force(point[0], point[1], force, self.bounds, self.rng)
        if isinstance(force, FormulaForce):
            return self.formulas.evaluate(force.expression, context)
        raise TypeError(f"Unsupported force {type(force).__name__}")

    def angle_at(self, x: float, y: float) -> float:
        """Combined flow angle in radians at (x, y)."""
        point = apply_all_transforms(x, y, self.bounds, self.deformation, self.noise2d)
        context = None
        if self._uses_context:
            context = create_formula_context(point, self.bounds, self.deformation, self.noise2d)
        zone_weights = self.zone_weights(point)

        vx = 0.0
        vy = 0.0
        for force in self.forces:
            if not force.enabled:
                continue

            if zone_weights is not None and force.id in zone_weights:
                weight = zone_weights[force.id]
            else:
                weight = resolve(force.weight, self.rng)
            if weight <= 0:
                continue

            angle = self._force_angle(force, point, context)
            vx += math.cos(angle) * weight
            vy += math.sin(angle) * weight

        if math.sqrt(vx * vx + vy * vy) < MIN_MAGNITUDE:
            return self.last_angle

        final_angle = math.atan2(vy, vx)

        # turbulence samples the undeformed point
        if self.deformation.turbulence > 0:
            turb = self.noise2d(x / TURBULENCE_SCALE, y / TURBULENCE_SCALE)
            final_angle += turb * self.deformation.turbulence * math.pi * 0.5

        self.last_angle = final_angle
        return final_angle

    def __call__(self, x: float, y: float) -> float:
        return self.angle_at(x, y)
