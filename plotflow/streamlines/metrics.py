from typing import Sequence

import numpy as np
from scipy.spatial import cKDTree

from plotflow.streamlines.tracer import RawStreamline


def total_length(streamlines: Sequence[RawStreamline]) -> float:
    """Summed polyline length, e.g. the pen travel while drawing."""
    length = 0.0
    for streamline in streamlines:
        if len(streamline.points) > 1:
            length += float(np.sum(np.linalg.norm(np.diff(streamline.points, axis=0), axis=1)))
    return length


def min_separation(streamlines: Sequence[RawStreamline], within: float) -> float:
    """Closest distance between points of two different streamlines.

    Only pairs closer than `within` are searched; returns inf when there
    is none.
    """
    if len(streamlines) < 2:
        return float("inf")

    points = np.vstack([s.points for s in streamlines])
    owner = np.concatenate([np.full(len(s.points), i) for i, s in enumerate(streamlines)])
    pairs = cKDTree(points).query_pairs(within, output_type="ndarray")
    if len(pairs) == 0:
        return float("inf")

    cross = pairs[owner[pairs[:, 0]] != owner[pairs[:, 1]]]
    if len(cross) == 0:
        return float("inf")
    return float(np.min(np.linalg.norm(points[cross[:, 0]] - points[cross[:, 1]], axis=1)))


def close_points(streamlines: Sequence[RawStreamline], within: float) -> list:
    """Per streamline, a mask of points lying within `within` of a point of an
    earlier streamline."""
    masks = [np.zeros(len(s.points), dtype=bool) for s in streamlines]
    if len(streamlines) < 2:
        return masks

    points = np.vstack([s.points for s in streamlines])
    owner = np.concatenate([np.full(len(s.points), i) for i, s in enumerate(streamlines)])
    offset = np.concatenate([[0], np.cumsum([len(s.points) for s in streamlines])])
    pairs = cKDTree(points).query_pairs(within, output_type="ndarray")
    for a, b in pairs:
        if owner[a] == owner[b]:
            continue
        later = a if owner[a] > owner[b] else b
        masks[owner[later]][later - offset[owner[later]]] = True
    return masks
