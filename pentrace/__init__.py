"""pentrace: raster image to pen-plotter strokes.

This package turns a raster image into an ordered set of pen strokes and
plans them into a toolpath job for a pen plotter or engraver.

Architecture layers (strict one-way dependency):
    scripts/ → pentrace/{data_pipeline,job_ir}/ → pentrace/utils/

Pipeline:
    image → binarize → mask → thin → skeleton → extract/build → strokes
          → plan_job → toolpath operations

Key invariants:
    - Pixel grids are (H, W) uint8 numpy arrays, origin top-left, +Y down
    - Masks are two-valued: 0 (background) and 255 (foreground)
    - Strokes partition the skeleton points: every point exactly once
    - YAML-only configs, validated with pydantic
"""

__version__ = "1.0.0"
