"""YAML schema validation and config loading.

Provides centralized validation for all YAML documents using pydantic:
    - Tracer schema (pen_trace.v1.yaml): binarization mode, plot mapping, debug output
    - Strokes schema (strokes.v1.yaml): ordered strokes in pixel coordinates
    - Toolpath schema (toolpath.v1.yaml): flat list of plotter operations

All modules must use these validators to load YAML for fail-fast error
detection with actionable messages (offending keys, expected ranges).

Units:
    - Strokes: pixels, image frame (top-left origin, +Y down)
    - Toolpath: plotter units, machine frame (+Y up), delays in ms

Usage:
    from pentrace.utils import validators

    cfg = validators.load_tracer_config("configs/pen_trace.v1.yaml")
    strokes = validators.load_strokes_file("out/strokes.yaml")
"""

from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# TRACER SCHEMA V1
# ============================================================================

class BinarizeConfig(BaseModel):
    """How the input image becomes a two-valued mask."""
    bw_mode: Literal["threshold", "edge-detect"] = Field(
        "threshold", description="Luminance threshold or Sobel edge detection"
    )
    threshold: float = Field(
        128, ge=0.0, description="Luminance cutoff (threshold) or gradient magnitude cutoff (edge-detect)"
    )
    invert: bool = Field(False, description="Invert luminance before thresholding")

    @model_validator(mode='after')
    def validate_threshold_range(self) -> 'BinarizeConfig':
        """Luminance thresholds are 8-bit integers; Sobel magnitudes are not."""
        if self.bw_mode == "threshold":
            if self.threshold > 255 or self.threshold != int(self.threshold):
                raise ValueError(
                    f"threshold mode needs an integer in [0, 255], got {self.threshold}"
                )
        return self


class PlotConfig(BaseModel):
    """Mapping from pixel grid to plotter units and pen timing."""
    height: float = Field(8.0, gt=0.0, description="Physical height of the image (units)")
    y_start: float = Field(8.0, description="Y position of the bottom of the image (units)")
    speed: float = Field(5.0, gt=0.0, description="Toolhead speed (units/s)")
    point_dist: float = Field(0.25, ge=0.0, description="Minimum distance between waypoints (units)")
    start_delay_ms: int = Field(1000, ge=0, description="Wait after reaching a stroke start (ms)")
    end_delay_ms: int = Field(1000, ge=0, description="Wait at the end of a stroke (ms)")


class DebugConfig(BaseModel):
    """Diagnostic output settings."""
    save_intermediates: bool = Field(True, description="Save mask, skeleton, path and preview images")


class TracerV1(BaseModel):
    """Pen tracer schema v1."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("pen_trace.v1", alias="schema", description="Schema version")
    binarize: BinarizeConfig = Field(default_factory=BinarizeConfig)
    plot: PlotConfig = Field(default_factory=PlotConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "pen_trace.v1":
            raise ValueError(f"Expected schema 'pen_trace.v1', got '{v}'")
        return v


# ============================================================================
# STROKES SCHEMA V1
# ============================================================================

class StrokesFileV1(BaseModel):
    """Ordered strokes in pixel coordinates (output of the path assembler)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("strokes.v1", alias="schema", description="Schema version")
    image_px: List[int] = Field(..., description="Pixel grid size [W, H]")
    strokes: List[List[List[int]]] = Field(..., description="Strokes as lists of [x, y]")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "strokes.v1":
            raise ValueError(f"Expected schema 'strokes.v1', got '{v}'")
        return v

    @field_validator('image_px')
    @classmethod
    def validate_image_px(cls, v: List[int]) -> List[int]:
        if len(v) != 2:
            raise ValueError(f"image_px must have 2 elements [W, H], got {len(v)}")
        if v[0] < 0 or v[1] < 0:
            raise ValueError(f"image_px dimensions must be non-negative, got {v}")
        return v

    @model_validator(mode='after')
    def validate_points(self) -> 'StrokesFileV1':
        """Every stroke is non-empty and every point lies on the grid."""
        w, h = self.image_px
        for i, stroke in enumerate(self.strokes):
            if not stroke:
                raise ValueError(f"Stroke {i} is empty")
            for j, pt in enumerate(stroke):
                if len(pt) != 2:
                    raise ValueError(f"Stroke {i} point {j} must have 2 coordinates, got {len(pt)}")
                x, y = pt
                if not (0 <= x < w and 0 <= y < h):
                    raise ValueError(f"Stroke {i} point {j} ({x}, {y}) outside {w}x{h} grid")
        return self


# ============================================================================
# TOOLPATH SCHEMA V1
# ============================================================================

class ToolpathOp(BaseModel):
    """Single serialized plotter operation."""
    op: Literal["speed", "waypoint", "delay", "pen_down", "pen_up"]
    speed: Optional[float] = Field(None, gt=0.0, description="Toolhead speed (units/s)")
    x: Optional[float] = None
    y: Optional[float] = None
    ms: Optional[int] = Field(None, ge=0, description="Delay duration (ms)")

    @model_validator(mode='after')
    def validate_fields(self) -> 'ToolpathOp':
        """Each op carries exactly the fields it needs."""
        required = {
            "speed": ("speed",),
            "waypoint": ("x", "y"),
            "delay": ("ms",),
            "pen_down": (),
            "pen_up": (),
        }[self.op]
        for name in ("speed", "x", "y", "ms"):
            value = getattr(self, name)
            if name in required and value is None:
                raise ValueError(f"'{self.op}' op requires '{name}'")
            if name not in required and value is not None:
                raise ValueError(f"'{self.op}' op does not take '{name}'")
        return self


class ToolpathV1(BaseModel):
    """Toolpath schema v1 (flat operation list)."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("toolpath.v1", alias="schema", description="Schema version")
    ops: List[ToolpathOp] = Field(..., description="Operations in execution order")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "toolpath.v1":
            raise ValueError(f"Expected schema 'toolpath.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def default_tracer_config() -> TracerV1:
    """Tracer config with every default (threshold 128, 8x8 unit plot)."""
    return TracerV1()


def load_tracer_config(path: Union[str, Path]) -> TracerV1:
    """Load and validate tracer config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to pen_trace.v1.yaml file

    Returns
    -------
    TracerV1
        Validated tracer configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tracer config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return TracerV1(**data)
    except Exception as e:
        raise ValueError(f"Tracer config validation failed at {path}: {e}") from e


def load_strokes_file(path: Union[str, Path]) -> StrokesFileV1:
    """Load and validate a strokes.v1 YAML file.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Strokes file not found: {path}")

    data = fs.load_yaml(path)
    try:
        return StrokesFileV1(**data)
    except Exception as e:
        raise ValueError(f"Strokes validation failed at {path}: {e}") from e


def load_toolpath(path: Union[str, Path]) -> ToolpathV1:
    """Load and validate a toolpath.v1 YAML file.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Toolpath file not found: {path}")

    data = fs.load_yaml(path)
    try:
        return ToolpathV1(**data)
    except Exception as e:
        raise ValueError(f"Toolpath validation failed at {path}: {e}") from e
