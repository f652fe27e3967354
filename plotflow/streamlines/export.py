import json
from typing import Any, Dict, Optional, Sequence

from plotflow.field.field import GlobalDeformation
from plotflow.field.forces import Force
from plotflow.streamlines.palette import ColorPalette
from plotflow.streamlines.tracer import LineParams

_MASK = 0xFFFFFFFF
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def djb2(text: str) -> int:
    h = 5381
    for char in text:
        h = (((h << 5) + h) & _MASK) ^ ord(char)
    return h


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rest = divmod(number, 36)
        digits.append(_DIGITS[rest])
    return "".join(reversed(digits))


def _essentials(
    line_params: LineParams,
    palette: Optional[ColorPalette],
    forces: Sequence[Force],
    deformation: GlobalDeformation,
) -> Dict[str, Any]:
    palette = palette or ColorPalette()
    return {
        "l": {
            "dSep": line_params.d_sep,
            "dTest": line_params.d_test,
            "step": line_params.step_size,
            "sw": line_params.stroke_width,
            "max": line_params.max_steps,
            "min": line_params.min_length,
            "opt": line_params.maximize_length,
        },
        "c": {
            "mode": palette.mode.value,
            "dir": palette.gradient_direction.value,
            "gc": palette.gradient_colors,
            "nc": palette.noise_colors,
            "ns": palette.noise_scale,
            "pc": palette.palette_colors,
            "pm": palette.palette_selection.value,
        },
        "f": [_force_essentials(f) for f in forces if f.enabled],
        "s": {
            "scale": deformation.scale,
            "warp": deformation.warp,
            "twist": deformation.twist,
            "turb": deformation.turbulence,
        },
    }


def _force_essentials(force: Force) -> Dict[str, Any]:
    params = force.to_dict()
    kind = params.pop("type")
    weight = params.pop("weight")
    for key in ("id", "name", "enabled"):
        params.pop(key)
    return {"t": kind, "w": weight, "p": params}


def params_hash(
    line_params: LineParams,
    palette: Optional[ColorPalette],
    forces: Sequence[Force],
    deformation: GlobalDeformation,
) -> str:
    """Six character fingerprint of everything that changes the drawing.

    Ids, names and disabled forces do not take part, so renaming a force
    keeps the hash.
    """
    text = json.dumps(_essentials(line_params, palette, forces, deformation), separators=(",", ":"))
    return to_base36(djb2(text))[-6:].rjust(6, "0")


def export_filename(
    fmt: str,
    seed: int,
    line_params: LineParams,
    palette: Optional[ColorPalette],
    forces: Sequence[Force],
    deformation: GlobalDeformation,
    extension: str = "svg",
) -> str:
    digest = params_hash(line_params, palette, forces, deformation)
    return f"flowfield_{fmt}_{seed}_{digest}.{extension}"
