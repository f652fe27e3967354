from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from plotflow.field.field import GlobalDeformation, VectorField
from plotflow.field.forces import Force, force_from_dict
from plotflow.field.geometry import Bounds
from plotflow.field.rng import Mulberry32
from plotflow.field.zones import Zone, ZoneParams, generate_zones, zone_from_dict
from plotflow.streamlines.palette import ColorPalette
from plotflow.streamlines.tracer import LineParams

DEFAULT_STROKE_COLOR = "#1a1a1a"

FORMATS = {
    "a4": (595, 842),
    "a3": (842, 1190),
    "square": (800, 800),
    "custom": (800, 600),
}


@dataclass
class FieldConfig:
    """Everything a vector field is built from, snapshotted per run."""

    forces: List[Force] = field(default_factory=list)
    deformation: GlobalDeformation = field(default_factory=GlobalDeformation)
    zones: List[Zone] = field(default_factory=list)
    bounds: Bounds = Bounds(0, 0, 800, 600)
    seed: int = 0

    def build_field(self) -> VectorField:
        return VectorField(
            self.forces,
            deformation=self.deformation,
            bounds=self.bounds,
            seed=self.seed,
            zones=self.zones,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldConfig":
        """Build from plain dicts; `bounds` may also name a canvas format.

        Without explicit "zones", a "zone_params" entry generates them from
        the seed.
        """
        bounds = data.get("bounds", {"x": 0, "y": 0, "width": 800, "height": 600})
        if isinstance(bounds, str):
            width, height = FORMATS[bounds]
            bounds = {"x": 0, "y": 0, "width": width, "height": height}
        config = cls(
            forces=[force_from_dict(f) for f in data.get("forces", [])],
            deformation=GlobalDeformation(**data.get("deformation", {})),
            zones=[zone_from_dict(z) for z in data.get("zones", [])],
            bounds=Bounds(**bounds),
            seed=int(data.get("seed", 0)),
        )
        if "zones" not in data and "zone_params" in data:
            config.regenerate_zones(ZoneParams(**data["zone_params"]))
        return config

    def regenerate_zones(self, params: ZoneParams) -> List[Zone]:
        rng = Mulberry32(self.seed)
        self.zones = generate_zones(params, [f.id for f in self.forces], rng)
        return self.zones

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forces": [f.to_dict() for f in self.forces],
            "deformation": vars(self.deformation).copy(),
            "zones": [z.to_dict() for z in self.zones],
            "bounds": vars(self.bounds).copy(),
            "seed": self.seed,
        }


@dataclass
class LineConfig:
    line_params: LineParams = field(default_factory=LineParams)
    margin: float = 40.0
    palette: Optional[ColorPalette] = None
    stroke_color: str = DEFAULT_STROKE_COLOR

    def __post_init__(self):
        if self.margin < 0:
            raise ValueError(f"margin must not be negative, got {self.margin}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineConfig":
        palette = data.get("palette")
        return cls(
            line_params=LineParams(**data.get("line_params", {})),
            margin=float(data.get("margin", 40.0)),
            palette=ColorPalette.from_dict(palette) if palette else None,
            stroke_color=data.get("stroke_color", DEFAULT_STROKE_COLOR),
        )
