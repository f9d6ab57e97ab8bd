#!/usr/bin/env python3
"""Trace a raster image into pen strokes and a plotter toolpath.

Runs the full pipeline on one image and writes every artifact into the
output directory:
    1. Binarize (threshold or edge-detect)
    2. Thin to a skeleton
    3. Order skeleton pixels into strokes
    4. Plan the toolpath (scale, centre, decimate, pen timing)

Settings come from an optional pen_trace.v1 YAML file; any flag given on
the command line overrides the file.

Usage::

    python scripts/trace_image.py --input cat.png --output result/

    # Edge detection, 12 units tall, sparser waypoints:
    python scripts/trace_image.py --input cat.png --bw-mode edge-detect \\
        --threshold 200 --height 12 --point-dist 0.5

    # Config file plus override:
    python scripts/trace_image.py --input cat.png --config pen_trace.yaml --invert
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_PROJECT_ROOT = str(Path(__file__).resolve().parents[1])
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from pentrace.data_pipeline import pen_tracer
from pentrace.utils import validators
from pentrace.utils.logging_config import install_excepthook, push_context, setup_logging

logger = logging.getLogger("trace_image")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Trace a raster image into pen-plotter strokes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--input", "-i", type=str, required=True, help="Input image path")
    parser.add_argument(
        "--output", "-o", type=str, default="result",
        help="Output directory for artifacts (default: result)",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="pen_trace.v1 YAML config; flags below override it",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        help="DEBUG, INFO, WARNING, ERROR (default: INFO)",
    )

    bw_group = parser.add_argument_group("Black & white conversion")
    bw_group.add_argument(
        "--bw-mode", choices=["threshold", "edge-detect"], default=None,
        help="How to convert the image to B&W pixels (default: threshold)",
    )
    bw_group.add_argument(
        "--threshold", type=float, default=None,
        help="Threshold value, 0-255 for threshold mode (default: 128)",
    )
    bw_group.add_argument(
        "--invert", action="store_true", default=None,
        help="Invert grayscale before thresholding",
    )

    plot_group = parser.add_argument_group("Plot placement and timing")
    plot_group.add_argument("--y-start", type=float, default=None, help="Y of the image bottom (default: 8.0)")
    plot_group.add_argument("--height", type=float, default=None, help="Image height in units (default: 8.0)")
    plot_group.add_argument("--speed", type=float, default=None, help="Toolhead speed, units/s (default: 5.0)")
    plot_group.add_argument(
        "--point-dist", type=float, default=None,
        help="Minimum distance between waypoints (default: 0.25)",
    )
    plot_group.add_argument(
        "--start-delay", type=int, default=None,
        help="Delay in ms at the start of each stroke (default: 1000)",
    )
    plot_group.add_argument(
        "--end-delay", type=int, default=None,
        help="Delay in ms at the end of each stroke (default: 1000)",
    )
    parser.add_argument(
        "--no-debug-images", action="store_true",
        help="Skip mask, skeleton, path and preview images",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> validators.TracerV1:
    """Merge the optional YAML config with command-line overrides.

    Raises
    ------
    FileNotFoundError
        If --config points to a missing file
    ValueError
        If the merged settings fail validation
    """
    base = validators.load_tracer_config(args.config) if args.config else validators.default_tracer_config()
    data = base.model_dump(by_alias=True)

    overrides = {
        ('binarize', 'bw_mode'): args.bw_mode,
        ('binarize', 'threshold'): args.threshold,
        ('binarize', 'invert'): args.invert,
        ('plot', 'y_start'): args.y_start,
        ('plot', 'height'): args.height,
        ('plot', 'speed'): args.speed,
        ('plot', 'point_dist'): args.point_dist,
        ('plot', 'start_delay_ms'): args.start_delay,
        ('plot', 'end_delay_ms'): args.end_delay,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            data[section][key] = value
    if args.no_debug_images:
        data['debug']['save_intermediates'] = False

    try:
        return validators.TracerV1(**data)
    except Exception as e:
        raise ValueError(f"Invalid tracer settings: {e}") from e


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(log_level=args.log_level, quiet_libs=["PIL"], context={"app": "trace"})
    install_excepthook()
    push_context(image=Path(args.input).name)

    try:
        cfg = config_from_args(args)
        result = pen_tracer.make_pen_layer(args.input, args.output, cfg)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error(f"Tracing failed: {e}")
        return 1

    logger.info(f"Artifacts saved to {args.output}: {result['metrics']['num_strokes']} strokes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
