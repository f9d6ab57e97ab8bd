"""Pen tracing pipeline: raster image → strokes → plotter job.

Pipeline:
    1. Binarize (luminance threshold or Sobel edge detection)
    2. Thin the mask to a one-pixel skeleton
    3. Extract skeleton points (row-major) and build strokes (greedy tour)
    4. Plan the toolpath job (scaling, decimation, pen timing)
    5. Save artifacts: strokes.yaml, toolpath.yaml and, when enabled,
       diagnostic images (mask, skeleton, path, preview)

trace_image() is pure computation on in-memory grids; make_pen_layer()
adds file I/O around it.

Output structure:
    <output_dir>/
        threshold.png | edge-detection.png
        skeleton.png
        path.png
        preview.png
        strokes.yaml      (strokes.v1, pixel coordinates)
        toolpath.yaml     (toolpath.v1, plotter units)
"""

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from . import binarize as bz
from . import path_assembly, skeleton
from ..job_ir import operations, planner
from ..utils import fs, validators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceResult:
    """Every intermediate of one tracing run."""
    mask: np.ndarray
    skeleton: np.ndarray
    points: List[path_assembly.Point]
    strokes: List[path_assembly.Stroke]
    mask_name: str

    @property
    def shape(self) -> Tuple[int, int]:
        return self.mask.shape


def trace_image(image: bz.ImageLike, strategy: bz.BinarizeStrategy) -> TraceResult:
    """Run binarize → thin → extract → build on an in-memory image.

    Parameters
    ----------
    image : np.ndarray or PIL.Image.Image
        Decoded image
    strategy : ThresholdStrategy or EdgeDetectStrategy
        Binarization variant

    Returns
    -------
    TraceResult
        Masks, extracted points and strokes
    """
    mask = bz.binarize(image, strategy)
    name = bz.mask_name(strategy)
    logger.info(f"Created {name} mask ({mask.shape[1]}x{mask.shape[0]} px)")

    skel = skeleton.thin(mask)
    logger.info("Created skeleton")

    points = path_assembly.extract_points(skel)
    logger.info(f"Extracted {len(points)} skeleton points")

    strokes = path_assembly.build_strokes(points)
    logger.info(f"Built {len(strokes)} strokes")

    return TraceResult(mask=mask, skeleton=skel, points=points, strokes=strokes, mask_name=name)


def strokes_to_dict(strokes: List[path_assembly.Stroke], width: int, height: int) -> Dict[str, Any]:
    """Serialize strokes into a strokes.v1 document (plain dict)."""
    return {
        'schema': 'strokes.v1',
        'image_px': [int(width), int(height)],
        'strokes': [[[int(p.x), int(p.y)] for p in stroke] for stroke in strokes],
    }


def strokes_from_file(path: Union[str, Path]) -> List[path_assembly.Stroke]:
    """Load strokes back from a strokes.v1 YAML file."""
    doc = validators.load_strokes_file(path)
    return [[path_assembly.Point(x, y) for x, y in stroke] for stroke in doc.strokes]


def _count_pen_strokes(ops: List[operations.Operation]) -> int:
    """Number of pen-down runs in a planned job."""
    return sum(
        1 for group in operations.operations_to_strokes(ops)
        if any(isinstance(op, operations.PenDown) for op in group)
    )


def make_pen_layer(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    cfg: Optional[validators.TracerV1] = None,
) -> Dict[str, Any]:
    """Trace an image file and write all artifacts.

    Parameters
    ----------
    input_path : Union[str, Path]
        Image file (any format Pillow decodes)
    output_dir : Union[str, Path]
        Directory for artifacts (created if missing)
    cfg : TracerV1, optional
        Validated tracer config; defaults to default_tracer_config()

    Returns
    -------
    dict
        Artifact paths ('strokes_yaml', 'toolpath_yaml', and the image
        paths when save_intermediates is on) plus 'metrics'

    Raises
    ------
    FileNotFoundError
        If input_path doesn't exist
    ValueError
        If the image cannot be decoded
    RuntimeError
        If an artifact cannot be written
    """
    cfg = cfg or validators.default_tracer_config()
    out_path = fs.ensure_dir(output_dir)

    logger.info(f"Tracing {input_path}")
    image = fs.load_image(input_path)

    strategy = bz.strategy_from_config(cfg.binarize)
    result = trace_image(image, strategy)
    height, width = result.shape

    artifacts: Dict[str, Any] = {}
    if cfg.debug.save_intermediates:
        images = {
            'mask_png': (f"{result.mask_name}.png", result.mask),
            'skeleton_png': ("skeleton.png", result.skeleton),
            'path_png': ("path.png", path_assembly.draw_strokes(result.shape, result.strokes)),
            'preview_png': ("preview.png", path_assembly.render_preview(result.shape, result.strokes)),
        }
        for key, (filename, img) in images.items():
            target = out_path / filename
            fs.atomic_save_image(img, target)
            artifacts[key] = str(target)
        logger.info(f"Saved diagnostic images to {out_path}")

    strokes_path = out_path / "strokes.yaml"
    fs.atomic_yaml_dump(strokes_to_dict(result.strokes, width, height), strokes_path)
    artifacts['strokes_yaml'] = str(strokes_path)

    ops = []
    if height > 0:
        ops = planner.plan_job(result.strokes, width, height, planner.PlotSettings.from_config(cfg.plot))
    else:
        logger.warning("Empty image: no toolpath planned")
    toolpath_path = out_path / "toolpath.yaml"
    fs.atomic_yaml_dump(operations.job_to_dict(ops), toolpath_path)
    artifacts['toolpath_yaml'] = str(toolpath_path)
    logger.info("Exported toolpath")

    artifacts['metrics'] = {
        'num_points': len(result.points),
        'num_strokes': len(result.strokes),
        'num_ops': len(ops),
        'num_pen_strokes': _count_pen_strokes(ops),
        'resolution': [int(width), int(height)],
        'bw_mode': cfg.binarize.bw_mode,
    }
    logger.info(f"Metrics: {artifacts['metrics']}")
    return artifacts
