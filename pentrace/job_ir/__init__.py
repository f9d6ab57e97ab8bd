"""
Toolpath intermediate representation.

Defines the plotter operations as immutable dataclasses and the planner
that maps pixel strokes onto them. This vocabulary is the contract
between the tracing pipeline and whatever encodes or streams the job.

All coordinates are in plotter units, machine frame (+Y up).
"""

from pentrace.job_ir.operations import (
    Operation,
    SetSpeed,
    Waypoint,
    Delay,
    PenDown,
    PenUp,
    Job,
    job_from_dict,
    job_to_dict,
    operations_to_strokes,
)
from pentrace.job_ir.planner import PlotSettings, plan_job

__all__ = [
    "Operation",
    "SetSpeed",
    "Waypoint",
    "Delay",
    "PenDown",
    "PenUp",
    "Job",
    "job_from_dict",
    "job_to_dict",
    "operations_to_strokes",
    "PlotSettings",
    "plan_job",
]
