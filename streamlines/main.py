import datetime
import logging
import re
import time

import matplotlib.pyplot as plt
import structlog

from plotflow.field.presets import PALETTE_PRESETS, create_random_config
from plotflow.field.rng import Mulberry32
from plotflow.streamlines.config import FieldConfig, LineConfig
from plotflow.streamlines.export import export_filename
from plotflow.streamlines.generator import generate_streamlines
from plotflow.streamlines.metrics import total_length
from plotflow.streamlines.palette import ColorPalette
from plotflow.streamlines.tracer import LineParams

logging.basicConfig(level=logging.INFO, format="%(message)s")
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

_RGB = re.compile(r"rgb\((\d+),\s*(\d+),\s*(\d+)\)")


def to_mpl_color(color: str):
    # line colours come as "#rrggbb" or "rgb(r, g, b)"
    match = _RGB.match(color)
    if match:
        return tuple(int(c) / 255 for c in match.groups())
    return color


rng = Mulberry32(int(time.time()))
fmt = "a3"
pics = 5

for pic in range(pics):
    t1 = datetime.datetime.now()

    field_config = FieldConfig.from_dict(create_random_config(rng, bounds=fmt))
    preset = list(PALETTE_PRESETS)[rng.randint(len(PALETTE_PRESETS))]
    line_config = LineConfig(
        line_params=LineParams(d_sep=round(rng.uniform(5, 12)), d_test=round(rng.uniform(2, 5))),
        palette=ColorPalette(mode="palette", palette_colors=PALETTE_PRESETS[preset]),
    )
    streamlines = generate_streamlines(field_config, line_config, progress=True)

    t2 = datetime.datetime.now()
    logger.info(
        "Streamlines calculated",
        pic=pic,
        seed=field_config.seed,
        streamlines=len(streamlines),
        length=round(total_length(streamlines)),
        seconds=(t2 - t1).total_seconds(),
    )

    bounds = field_config.bounds
    plt.figure(figsize=(bounds.width / 72, bounds.height / 72))
    for streamline in streamlines:
        plt.plot(
            streamline.points[:, 0],
            streamline.points[:, 1],
            color=to_mpl_color(streamline.color),
            linewidth=line_config.line_params.stroke_width * 0.5,
        )
    plt.xlim(bounds.x, bounds.x + bounds.width)
    plt.ylim(bounds.y + bounds.height, bounds.y)
    plt.gca().set_aspect("equal")
    plt.axis("off")
    plt.tight_layout()
    for extension in ("svg", "png"):
        plt.savefig(export_filename(
            fmt,
            field_config.seed,
            line_config.line_params,
            line_config.palette,
            field_config.forces,
            field_config.deformation,
            extension,
        ))
    plt.close()

    t3 = datetime.datetime.now()
    logger.info("Plot saved", pic=pic, seconds=(t3 - t2).total_seconds())
