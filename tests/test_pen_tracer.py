"""End-to-end tests for the pen tracing pipeline.

Tests for pentrace.data_pipeline.pen_tracer:
    - trace_image() on synthetic images (bar, blank canvas)
    - make_pen_layer() artifacts, metrics and YAML schemas
    - Edge-detect mode naming and debug image toggle

Run:
    pytest tests/test_pen_tracer.py -v
"""

import numpy as np
import pytest
from PIL import Image

from pentrace.data_pipeline import binarize as bz
from pentrace.data_pipeline import pen_tracer
from pentrace.data_pipeline.path_assembly import Point
from pentrace.job_ir import PenDown, PenUp, SetSpeed, job_from_dict
from pentrace.utils import fs, validators


@pytest.fixture
def bar_image():
    """Black 20x9 RGB image with a white 16x5 bar."""
    img = np.zeros((9, 20, 3), dtype=np.uint8)
    img[2:7, 2:18] = 255
    return img


@pytest.fixture
def bar_png(tmp_path, bar_image):
    path = tmp_path / "bar.png"
    Image.fromarray(bar_image).save(path)
    return path


def test_trace_bar(bar_image):
    result = pen_tracer.trace_image(bar_image, bz.ThresholdStrategy())

    assert result.shape == (9, 20)
    assert result.mask_name == "threshold"
    assert int((result.mask > 0).sum()) == 5 * 16
    assert result.points == [Point(x, 4) for x in range(4, 15)]
    assert result.strokes == [[Point(x, 4) for x in range(4, 15)]]


def test_trace_blank_image():
    result = pen_tracer.trace_image(np.zeros((6, 6, 3), dtype=np.uint8), bz.ThresholdStrategy())
    assert result.points == []
    assert result.strokes == []


def test_trace_accepts_pil(bar_image):
    from_array = pen_tracer.trace_image(bar_image, bz.ThresholdStrategy())
    from_pil = pen_tracer.trace_image(Image.fromarray(bar_image), bz.ThresholdStrategy())
    assert from_pil.strokes == from_array.strokes


def test_make_pen_layer(tmp_path, bar_png):
    out_dir = tmp_path / "result"
    artifacts = pen_tracer.make_pen_layer(bar_png, out_dir)

    for key in ("mask_png", "skeleton_png", "path_png", "preview_png", "strokes_yaml", "toolpath_yaml"):
        assert key in artifacts
    assert artifacts["mask_png"].endswith("threshold.png")
    assert sorted(p.name for p in out_dir.iterdir()) == [
        "path.png", "preview.png", "skeleton.png", "strokes.yaml", "threshold.png", "toolpath.yaml",
    ]

    metrics = artifacts["metrics"]
    assert metrics["num_points"] == 11
    assert metrics["num_strokes"] == 1
    # speed + (waypoint, delay, pen_down) + 10 waypoints + (delay, pen_up)
    assert metrics["num_ops"] == 16
    assert metrics["num_pen_strokes"] == metrics["num_strokes"]
    assert metrics["resolution"] == [20, 9]
    assert metrics["bw_mode"] == "threshold"

    skel = np.array(Image.open(artifacts["skeleton_png"]))
    assert set(np.unique(skel).tolist()) == {0, 255}
    assert int((skel > 0).sum()) == 11


def test_make_pen_layer_yaml_outputs(tmp_path, bar_png):
    artifacts = pen_tracer.make_pen_layer(bar_png, tmp_path / "out")

    strokes = pen_tracer.strokes_from_file(artifacts["strokes_yaml"])
    assert strokes == [[Point(x, 4) for x in range(4, 15)]]

    doc = validators.load_toolpath(artifacts["toolpath_yaml"])
    assert doc.schema_version == "toolpath.v1"
    ops = job_from_dict(fs.load_yaml(artifacts["toolpath_yaml"]))
    assert ops[0] == SetSpeed(5.0)
    assert ops[3] == PenDown()
    assert ops[-1] == PenUp()
    assert len(ops) == artifacts["metrics"]["num_ops"]


def test_make_pen_layer_edge_detect_without_debug(tmp_path, bar_png):
    cfg = validators.TracerV1(
        binarize={"bw_mode": "edge-detect", "threshold": 128},
        debug={"save_intermediates": False},
    )
    out_dir = tmp_path / "edges"
    artifacts = pen_tracer.make_pen_layer(bar_png, out_dir, cfg)

    assert "mask_png" not in artifacts
    assert sorted(p.name for p in out_dir.iterdir()) == ["strokes.yaml", "toolpath.yaml"]
    assert artifacts["metrics"]["bw_mode"] == "edge-detect"
    assert artifacts["metrics"]["num_strokes"] >= 1


def test_make_pen_layer_edge_mask_name(tmp_path, bar_png):
    cfg = validators.TracerV1(binarize={"bw_mode": "edge-detect"})
    artifacts = pen_tracer.make_pen_layer(bar_png, tmp_path / "edges", cfg)
    assert artifacts["mask_png"].endswith("edge-detection.png")


def test_make_pen_layer_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        pen_tracer.make_pen_layer(tmp_path / "nope.png", tmp_path / "out")


def test_strokes_to_dict():
    doc = pen_tracer.strokes_to_dict([[Point(0, 0), Point(1, 1)], [Point(3, 2)]], 4, 3)
    assert doc == {
        "schema": "strokes.v1",
        "image_px": [4, 3],
        "strokes": [[[0, 0], [1, 1]], [[3, 2]]],
    }
    validators.StrokesFileV1(**doc)


def test_blank_image_has_no_pen_strokes(tmp_path):
    path = tmp_path / "blank.png"
    Image.fromarray(np.zeros((6, 6, 3), dtype=np.uint8)).save(path)
    metrics = pen_tracer.make_pen_layer(path, tmp_path / "out")["metrics"]
    assert metrics["num_strokes"] == 0
    assert metrics["num_ops"] == 1
    assert metrics["num_pen_strokes"] == 0
