"""Stroke planner -- pixel strokes to a plotter job.

Coordinate mapping (pixel grid W×H → plotter units)::

    scale    = height / H
    x_offset = -scale * W / 2          # image centred on X = 0
    X = x * scale + x_offset
    Y = (H - y) * scale + y_start      # +Y up, image bottom at y_start

Waypoint decimation keeps the first and last point of every stroke and
any point at least ``point_dist`` away from the last emitted waypoint.
The last emitted waypoint carries over between strokes.

Per stroke the job reads::

    Waypoint(first), Delay(start), PenDown, Waypoint..., Delay(end), PenUp
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from pentrace.job_ir.operations import (
    Delay,
    Job,
    PenDown,
    PenUp,
    SetSpeed,
    Waypoint,
)
from pentrace.utils import validators

logger = logging.getLogger(__name__)

# Farther than any real waypoint, so the first point is never decimated
_FAR_AWAY = Waypoint(x=1_000_000.0, y=0.0)


@dataclass(frozen=True)
class PlotSettings:
    """Physical placement and pen timing for a job."""

    height: float = 8.0
    y_start: float = 8.0
    speed: float = 5.0
    point_dist: float = 0.25
    start_delay_ms: int = 1000
    end_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.height <= 0:
            raise ValueError(f"height must be positive, got {self.height}")
        if self.point_dist < 0:
            raise ValueError(f"point_dist must be >= 0, got {self.point_dist}")

    @classmethod
    def from_config(cls, cfg: validators.PlotConfig) -> PlotSettings:
        return cls(
            height=cfg.height,
            y_start=cfg.y_start,
            speed=cfg.speed,
            point_dist=cfg.point_dist,
            start_delay_ms=cfg.start_delay_ms,
            end_delay_ms=cfg.end_delay_ms,
        )


def _dist(a: Waypoint, b: Waypoint) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def plan_job(
    strokes: Sequence[Sequence[tuple[int, int]]],
    width: int,
    height: int,
    settings: PlotSettings | None = None,
) -> Job:
    """Turn ordered pixel strokes into a flat toolpath job.

    Parameters
    ----------
    strokes : Sequence of strokes
        Each stroke a non-empty sequence of (x, y) pixel points.
    width, height : int
        Pixel grid size the strokes were traced on.
    settings : PlotSettings | None
        Placement and timing; defaults to ``PlotSettings()``.

    Returns
    -------
    Job
        ``SetSpeed`` followed by one pen-down/pen-up block per stroke.

    Raises
    ------
    ValueError
        If the grid height is not positive (the scale is undefined).
    """
    settings = settings or PlotSettings()
    if height <= 0:
        raise ValueError(f"Image height must be positive to plan a job, got {height}")

    scale = settings.height / height
    x_offset = -scale * width / 2
    y_offset = settings.y_start

    ops: Job = [SetSpeed(speed=settings.speed)]
    last = _FAR_AWAY
    for stroke in strokes:
        n = len(stroke)
        for i, (px, py) in enumerate(stroke):
            wp = Waypoint(
                x=px * scale + x_offset,
                y=(height - py) * scale + y_offset,
            )
            if i == 0 or i == n - 1 or _dist(last, wp) >= settings.point_dist:
                ops.append(wp)
                last = wp
            if i == 0:
                ops.append(Delay(duration_ms=settings.start_delay_ms))
                ops.append(PenDown())
        ops.append(Delay(duration_ms=settings.end_delay_ms))
        ops.append(PenUp())

    logger.debug(
        f"Planned {len(ops)} ops for {len(strokes)} strokes "
        f"(scale={scale:.4f} units/px)"
    )
    return ops
