"""Toolpath operations -- the vocabulary between strokes and the plotter.

Every job action is an immutable, slotted dataclass.  Operations use
**semantic** names (``PenDown``, not a servo angle) and **plotter units**
in the machine frame (+Y up, image centred on X = 0).

Grouping
--------
A *stroke* is the run of operations up to and including a ``PenUp``:
travel to the first waypoint, wait, pen down, draw, wait, pen up.

Serialization
-------------
``job_to_dict`` / ``job_from_dict`` map a job to the ``toolpath.v1``
YAML document.  The device's binary instruction encoding is not part of
this package.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import Any

from pentrace.utils import validators

# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operation(ABC):
    """Base class for all toolpath operations."""

    pass


Job = list[Operation]
"""A complete job is a flat sequence of operations."""


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SetSpeed(Operation):
    """Set toolhead speed for subsequent moves.

    Parameters
    ----------
    speed : float
        Units per second, must be positive.
    """

    speed: float

    def __post_init__(self) -> None:
        if self.speed <= 0:
            raise ValueError(f"speed must be positive, got {self.speed}")


@dataclass(frozen=True, slots=True)
class Waypoint(Operation):
    """Move to a position (drawing if the pen is down).

    Parameters
    ----------
    x, y : float
        Target in plotter units.
    """

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Delay(Operation):
    """Hold position for a fixed time.

    Parameters
    ----------
    duration_ms : int
        Milliseconds, must be >= 0.
    """

    duration_ms: int

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError(
                f"duration_ms must be >= 0, got {self.duration_ms}"
            )


@dataclass(frozen=True, slots=True)
class PenDown(Operation):
    """Lower the pen onto the paper."""

    pass


@dataclass(frozen=True, slots=True)
class PenUp(Operation):
    """Lift the pen off the paper."""

    pass


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def operations_to_strokes(ops: list[Operation]) -> list[list[Operation]]:
    """Split a flat operation list into strokes at ``PenUp`` boundaries.

    Leading ops before the first stroke (``SetSpeed``) stay at the front
    of the first group.  Trailing ops without a closing ``PenUp`` form a
    final group.
    """
    groups: list[list[Operation]] = []
    current: list[Operation] = []

    for op in ops:
        current.append(op)
        if isinstance(op, PenUp):
            groups.append(current)
            current = []

    if current:
        groups.append(current)

    return groups


def _op_to_dict(op: Operation) -> dict[str, Any]:
    if isinstance(op, SetSpeed):
        return {"op": "speed", "speed": float(op.speed)}
    if isinstance(op, Waypoint):
        return {"op": "waypoint", "x": float(op.x), "y": float(op.y)}
    if isinstance(op, Delay):
        return {"op": "delay", "ms": int(op.duration_ms)}
    if isinstance(op, PenDown):
        return {"op": "pen_down"}
    if isinstance(op, PenUp):
        return {"op": "pen_up"}
    raise TypeError(f"Unknown operation: {type(op).__name__}")


def job_to_dict(ops: list[Operation]) -> dict[str, Any]:
    """Serialize a job into a ``toolpath.v1`` document (plain dict)."""
    return {
        "schema": "toolpath.v1",
        "ops": [_op_to_dict(op) for op in ops],
    }


def job_from_dict(data: dict[str, Any]) -> Job:
    """Validate a ``toolpath.v1`` document and rebuild the operations.

    Raises
    ------
    ValueError
        If the document fails schema validation.
    """
    try:
        doc = validators.ToolpathV1(**data)
    except Exception as e:
        raise ValueError(f"Toolpath validation failed: {e}") from e
    return ops_from_schema(doc)


def ops_from_schema(doc: validators.ToolpathV1) -> Job:
    """Convert an already validated toolpath document into operations."""
    ops: Job = []
    for item in doc.ops:
        if item.op == "speed":
            ops.append(SetSpeed(speed=item.speed))
        elif item.op == "waypoint":
            ops.append(Waypoint(x=item.x, y=item.y))
        elif item.op == "delay":
            ops.append(Delay(duration_ms=item.ms))
        elif item.op == "pen_down":
            ops.append(PenDown())
        else:
            ops.append(PenUp())
    return ops
