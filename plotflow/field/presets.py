from typing import Dict, List, NamedTuple, Optional

from plotflow.field.forces import (
    CircularMode,
    default_circular_force,
    default_formula_force,
    default_noise_force,
)
from plotflow.field.rng import Mulberry32
from plotflow.field.zones import ZonePlacement


class FormulaPreset(NamedTuple):
    name: str
    expression: str
    description: str


FORMULA_PRESETS: List[FormulaPreset] = [
    FormulaPreset("Sine Waves", "sin(x/scale) * cos(y/scale)", "Classic sine wave interference pattern"),
    FormulaPreset("Perlin Flow", "noise(x/scale, y/scale) * PI * 2", "Smooth perlin-like noise field"),
    FormulaPreset("Spiral", "angle + dist * 0.01", "Spiraling outward from center"),
    FormulaPreset("Vortex", "angle + PI/2 + sin(dist/50) * 0.5", "Swirling vortex pattern"),
    FormulaPreset("Diagonal Flow", "PI/4 + sin((x+y)/scale) * 0.5", "45-degree flow with wave modulation"),
    FormulaPreset("Radial Burst", "angle + cos(dist/30) * PI * turbulence", "Radiating lines with turbulent edges"),
    FormulaPreset(
        "Magnetic Field",
        "atan2(ny - 0.3, nx - 0.3) * 0.5 + atan2(ny - 0.7, nx - 0.7) * 0.5",
        "Two-pole magnetic field simulation",
    ),
    FormulaPreset("Gravity Well", "angle + PI/2 - 1/max(dist, 10) * 500", "Orbital paths around center"),
    FormulaPreset("Wave Grid", "sin(x/50) * sin(y/50) * PI", "Grid-aligned wave pattern"),
    FormulaPreset("Chaos", "sin(x/scale * y/scale) * tan(noise(nx, ny)) * PI", "Chaotic, unpredictable flow"),
    FormulaPreset("Horizontal Bands", "sin(y/scale) * PI/4", "Wavy horizontal stripes"),
    FormulaPreset("Vertical Bands", "PI/2 + sin(x/scale) * PI/4", "Wavy vertical stripes"),
    FormulaPreset("Concentric Circles", "angle + PI/2", "Perfect circular flow"),
    FormulaPreset("Twist Warp", "angle + dist/100 * twist/360 * TAU", "Uses twist super param for spiral intensity"),
    FormulaPreset(
        "Turbulent Noise",
        "noise(x/scale + turbulence*10, y/scale) * PI * (1 + turbulence)",
        "Noise affected by turbulence param",
    ),
    FormulaPreset("Fireworks", "nx * PI", "Explosive radial patterns"),
]

PALETTE_PRESETS: Dict[str, List[str]] = {
    "sunset": ["#ff6b6b", "#feca57", "#ff9ff3", "#54a0ff"],
    "ocean": ["#0c2461", "#1e3799", "#4a69bd", "#6a89cc", "#82ccdd"],
    "forest": ["#1e3d14", "#2d5a27", "#4a7c39", "#6b8e4e", "#96ceb4"],
    "warm": ["#e76f51", "#f4a261", "#e9c46a", "#2a9d8f", "#264653"],
    "cool": ["#a8dadc", "#457b9d", "#1d3557", "#f1faee", "#e63946"],
    "neon": ["#ff00ff", "#00ffff", "#ff00aa", "#00ff00", "#ffff00"],
    "mono": ["#1a1a1a", "#333333", "#666666", "#999999", "#cccccc"],
    "earth": ["#6b4423", "#8b5a2b", "#a0522d", "#cd853f", "#deb887"],
}


def formula_preset(name: str) -> FormulaPreset:
    for preset in FORMULA_PRESETS:
        if preset.name.lower() == name.lower():
            return preset
    raise KeyError(f"No formula preset named {name!r}")


def default_forces() -> list:
    """The starting force set: noise at full weight, circular and formula muted."""
    return [default_noise_force(), default_circular_force(), default_formula_force()]


def create_random_config(
    rng: Mulberry32,
    bounds="custom",
    n_forces: int = -1,
    max_warp: float = 0.5,
    max_twist: float = 180.0,
    max_turbulence: float = 0.3,
    zones: Optional[bool] = None,
    seed: int = -1,
) -> dict:
    """
    Create a random field config, later turned into a FieldConfig with
    `FieldConfig.from_dict`. Negative parameter values are drawn at random,
    `zones=None` enables zones with a 30% chance.
    """
    if seed < 0:
        seed = rng.randint(2 ** 31)
    if n_forces < 0:
        n_forces = 1 + rng.randint(3)

    forces = []
    for i in range(n_forces):
        kind = ["noise", "circular", "formula"][rng.randint(3)]
        weight = round(rng.uniform(0.3, 1.0), 2)
        if kind == "noise":
            forces.append({
                "type": "noise",
                "id": f"force-{i}",
                "name": "Noise",
                "weight": weight,
                "scale": round(rng.uniform(80, 320)),
                "complexity": round(rng.uniform(0.5, 3.0), 2),
                "octaves": 1 + rng.randint(4),
            })
        elif kind == "circular":
            modes = list(CircularMode)
            forces.append({
                "type": "circular",
                "id": f"force-{i}",
                "name": "Circular",
                "weight": weight,
                "center_x": round(rng.uniform(0.2, 0.8), 2),
                "center_y": round(rng.uniform(0.2, 0.8), 2),
                "mode": modes[rng.randint(len(modes))].value,
                "frequency": round(rng.uniform(0.5, 4.0), 2),
            })
        else:
            preset = FORMULA_PRESETS[rng.randint(len(FORMULA_PRESETS))]
            forces.append({
                "type": "formula",
                "id": f"force-{i}",
                "name": preset.name,
                "weight": weight,
                "expression": preset.expression,
            })

    params = {
        "forces": forces,
        "deformation": {
            "scale": round(rng.uniform(100, 300)),
            "warp": round(rng.uniform(0, max_warp), 2),
            "twist": round(rng.uniform(-max_twist, max_twist)),
            "turbulence": round(rng.uniform(0, max_turbulence), 2),
        },
        "bounds": bounds,
        "seed": seed,
    }

    if zones is None:
        zones = rng.next() < 0.3
    if zones and len(forces) > 1:
        placements = list(ZonePlacement)
        params["zone_params"] = {
            "enabled": True,
            "count": 2 + rng.randint(3),
            "transition_width": round(rng.uniform(0.3, 0.8), 2),
            "placement": placements[rng.randint(len(placements))].value,
        }

    return params
