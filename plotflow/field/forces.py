import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, ClassVar, Dict, Union

from plotflow.field.rng import Mulberry32


@dataclass(frozen=True)
class Range:
    """A min/max value resolved by one RNG draw per use."""

    min: float
    max: float

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"Range min {self.min} is larger than max {self.max}")


Value = Union[float, Range]


def resolve(value: Value, rng: Mulberry32) -> float:
    if isinstance(value, Range):
        return value.min + rng.next() * (value.max - value.min)
    return value


def value_from_dict(value: Any) -> Value:
    if isinstance(value, dict):
        return Range(float(value["min"]), float(value["max"]))
    return float(value)


class ForceType(Enum):
    NOISE = "noise"
    CIRCULAR = "circular"
    FORMULA = "formula"


class CircularMode(Enum):
    TANGENT = "tangent"
    RADIAL = "radial"
    SPIRAL = "spiral"


@dataclass
class Force:
    id: str
    name: str = ""
    weight: Value = 1.0
    enabled: bool = True

    kind: ClassVar[ForceType]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.kind.value
        return data


@dataclass
class NoiseForce(Force):
    scale: Value = 200.0
    complexity: float = 1.5
    octaves: int = 1

    kind = ForceType.NOISE


@dataclass
class CircularForce(Force):
    center_x: float = 0.5
    center_y: float = 0.5
    mode: CircularMode = CircularMode.TANGENT
    frequency: Value = 2.0

    kind = ForceType.CIRCULAR

    def __post_init__(self):
        if not isinstance(self.mode, CircularMode):
            self.mode = CircularMode(self.mode)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["mode"] = self.mode.value
        return data


@dataclass
class FormulaForce(Force):
    expression: str = "sin(x/scale) * cos(y/scale)"

    kind = ForceType.FORMULA


_VARIANTS = {
    ForceType.NOISE: NoiseForce,
    ForceType.CIRCULAR: CircularForce,
    ForceType.FORMULA: FormulaForce,
}


def force_from_dict(data: Dict[str, Any]) -> Force:
    """Build a force from its tagged dict form.

    Raises ValueError for an unknown or missing "type".
    """
    data = dict(data)
    try:
        kind = ForceType(data.pop("type"))
    except KeyError:
        raise ValueError("Force definition needs a 'type'") from None
    params = data.pop("params", {})
    data.update(params)
    for key in ("weight", "scale", "frequency"):
        if key in data:
            data[key] = value_from_dict(data[key])
    return _VARIANTS[kind](**data)


# ---- evaluators ----

def evaluate_noise_force(x: float, y: float, force: NoiseForce, noise2d, rng: Mulberry32) -> float:
    scale = resolve(force.scale, rng)
    n = noise2d.fractal(x / scale, y / scale, force.octaves)
    return n * math.pi * force.complexity


def evaluate_circular_force(x: float, y: float, force: CircularForce, bounds, rng: Mulberry32) -> float:
    cx = bounds.x + bounds.width * force.center_x
    cy = bounds.y + bounds.height * force.center_y
    dx = x - cx
    dy = y - cy
    dist = math.sqrt(dx * dx + dy * dy)
    base_angle = math.atan2(dy, dx)
    frequency = resolve(force.frequency, rng)

    if force.mode is CircularMode.TANGENT:
        return base_angle + math.pi / 2 + math.sin(dist / 50 * frequency) * 0.5
    if force.mode is CircularMode.RADIAL:
        return base_angle + math.cos(dist / 30 * frequency) * math.pi
    if force.mode is CircularMode.SPIRAL:
        return base_angle + math.pi / 2 + dist / 100 * frequency
    raise ValueError(f"Unknown circular mode {force.mode}")


def default_noise_force(force_id: str = "noise") -> NoiseForce:
    return NoiseForce(id=force_id, name="Noise", weight=1.0, scale=200.0, complexity=1.5, octaves=1)


def default_circular_force(force_id: str = "circular") -> CircularForce:
    return CircularForce(id=force_id, name="Circular", weight=0.0, frequency=2.0)


def default_formula_force(force_id: str = "formula") -> FormulaForce:
    return FormulaForce(id=force_id, name="Formula", weight=0.0)
