"""Vectorization pipeline: raster image → ordered pen strokes.

Modules:
    - binarize: luminance threshold / Sobel edge detection → mask
    - skeleton: iterative conditional erosion → one-pixel skeleton
    - path_assembly: skeleton points → strokes (greedy nearest-neighbour tour)
    - pen_tracer: end-to-end orchestration, diagnostics and artifact export

Workflow:
    1. Decoded image → binarize(image, strategy)
    2. Mask → thin(mask)
    3. Skeleton → extract_points → build_strokes
    4. Strokes → job_ir.plan_job (outside this package)

All stages return new arrays; none mutates its input.
"""
