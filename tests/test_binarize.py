"""Unit tests for the binarization stage.

Tests:
    - Integer luminance with round-half-up weighting
    - Strict threshold comparison and inversion
    - RGBA premultiplication and PIL input
    - Sobel edge detection (interior only, border left at background)
    - Strategy dispatch and config conversion
"""

import numpy as np
import pytest
from PIL import Image

from pentrace.data_pipeline import binarize
from pentrace.data_pipeline.binarize import EdgeDetectStrategy, ThresholdStrategy
from pentrace.utils import fs, validators


def solid(h, w, rgb):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[...] = rgb
    return img


# ---------------------------------------------------------------------------
# Luminance
# ---------------------------------------------------------------------------


class TestLuminance:
    @pytest.mark.parametrize("rgb, expected", [
        ((255, 0, 0), 76),
        ((0, 255, 0), 150),
        ((0, 0, 255), 29),
        ((255, 255, 255), 255),
        ((0, 0, 0), 0),
        ((128, 128, 128), 128),
    ])
    def test_weighted_sum(self, rgb, expected) -> None:
        lum = binarize.luminance(solid(1, 1, rgb))
        assert lum.dtype == np.uint8
        assert int(lum[0, 0]) == expected

    def test_grayscale_is_identity(self) -> None:
        gray = np.arange(256, dtype=np.uint8).reshape(16, 16)
        np.testing.assert_array_equal(binarize.luminance(gray), gray)

    def test_rgba_is_premultiplied(self) -> None:
        img = np.array([[[255, 255, 255, 0],
                         [255, 255, 255, 255],
                         [200, 200, 200, 128]]], dtype=np.uint8)
        lum = binarize.luminance(img)
        assert lum.tolist() == [[0, 255, 100]]

    def test_pil_image_input(self) -> None:
        pil = Image.new("RGB", (3, 2), (0, 255, 0))
        lum = binarize.luminance(pil)
        assert lum.shape == (2, 3)
        assert np.all(lum == 150)

    def test_pil_16bit_grayscale(self) -> None:
        pil = Image.fromarray(np.full((2, 3), 32768, dtype=np.uint16))
        lum = binarize.luminance(pil)
        assert lum.shape == (2, 3)
        assert np.all(lum == 128)

    def test_pil_palette_transparency_matches_file_load(self, tmp_path) -> None:
        pil = Image.new("P", (2, 1))
        pil.putpalette([255, 255, 255] * 2)
        pil.putdata([0, 1])
        path = tmp_path / "palette.png"
        pil.save(path, transparency=0)

        with Image.open(path) as reopened:
            from_pil = binarize.luminance(reopened)
        from_file = binarize.luminance(fs.load_image(path))
        assert from_pil.tolist() == [[0, 255]]
        np.testing.assert_array_equal(from_pil, from_file)

    def test_rejects_bad_shape(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            binarize.luminance(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_rejects_float_channels(self) -> None:
        with pytest.raises(ValueError, match="integer"):
            binarize.luminance(np.zeros((2, 2, 3), dtype=np.float32))


# ---------------------------------------------------------------------------
# Threshold
# ---------------------------------------------------------------------------


class TestThreshold:
    def test_mid_gray_above_low_threshold(self) -> None:
        mask = binarize.threshold(solid(1, 1, (128, 128, 128)), 76)
        assert mask[0, 0] == 255

    def test_equal_luminance_is_background(self) -> None:
        mask = binarize.threshold(solid(1, 1, (128, 128, 128)), 128)
        assert mask[0, 0] == 0

    def test_one_below_is_foreground(self) -> None:
        mask = binarize.threshold(solid(1, 1, (128, 128, 128)), 127)
        assert mask[0, 0] == 255

    def test_invert(self) -> None:
        img = solid(1, 1, (128, 128, 128))
        # inverted luminance is 127
        assert binarize.threshold(img, 127, invert=True)[0, 0] == 0
        assert binarize.threshold(img, 126, invert=True)[0, 0] == 255

    def test_two_valued_output(self) -> None:
        rng = np.random.default_rng(0)
        img = rng.integers(0, 256, size=(20, 30, 3), dtype=np.uint8)
        mask = binarize.threshold(img, 100)
        assert mask.shape == (20, 30)
        assert mask.dtype == np.uint8
        assert set(np.unique(mask).tolist()) <= {0, 255}

    def test_zero_sized_image(self) -> None:
        mask = binarize.threshold(np.zeros((0, 0, 3), dtype=np.uint8), 128)
        assert mask.shape == (0, 0)

    @pytest.mark.parametrize("t", [-1, 256, 12.5])
    def test_rejects_out_of_range(self, t) -> None:
        with pytest.raises(ValueError, match="Threshold"):
            binarize.threshold(solid(1, 1, (0, 0, 0)), t)


# ---------------------------------------------------------------------------
# Edge detection
# ---------------------------------------------------------------------------


class TestEdgeDetection:
    @pytest.mark.parametrize("value", [0, 77, 255])
    @pytest.mark.parametrize("thr", [0.0, 10.0, 500.0])
    def test_flat_image_has_no_edges(self, value, thr) -> None:
        mask = binarize.edge_detection(solid(9, 7, (value, value, value)), thr)
        assert not mask.any()

    def test_vertical_step(self) -> None:
        gray = np.zeros((5, 6), dtype=np.uint8)
        gray[:, 3:] = 255
        mask = binarize.edge_detection(gray, 100.0)

        expected = np.zeros((5, 6), dtype=np.uint8)
        expected[1:4, 2:4] = 255
        np.testing.assert_array_equal(mask, expected)

    def test_magnitude_comparison_is_strict(self) -> None:
        gray = np.zeros((5, 6), dtype=np.uint8)
        gray[:, 3:] = 255
        # |Gx| = 4 * 255 = 1020 next to the step
        np.testing.assert_array_equal(binarize.sobel_magnitude(gray)[:, 1], [1020.0] * 3)
        assert not binarize.edge_detection(gray, 1020.0).any()
        assert binarize.edge_detection(gray, 1019.9).any()

    def test_border_is_never_set(self) -> None:
        rng = np.random.default_rng(1)
        img = rng.integers(0, 256, size=(12, 10, 3), dtype=np.uint8)
        mask = binarize.edge_detection(img, 0.0)
        assert not mask[0, :].any()
        assert not mask[-1, :].any()
        assert not mask[:, 0].any()
        assert not mask[:, -1].any()

    def test_tiny_images_are_background(self) -> None:
        for shape in [(0, 0, 3), (2, 5, 3), (5, 2, 3)]:
            img = np.full(shape, 255, dtype=np.uint8)
            mask = binarize.edge_detection(img, 0.0)
            assert mask.shape == shape[:2]
            assert not mask.any()

    def test_rejects_negative_threshold(self) -> None:
        with pytest.raises(ValueError):
            binarize.edge_detection(solid(3, 3, (0, 0, 0)), -1.0)


# ---------------------------------------------------------------------------
# Strategy dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_threshold_strategy(self) -> None:
        img = solid(4, 4, (128, 128, 128))
        out = binarize.binarize(img, ThresholdStrategy(threshold=76))
        np.testing.assert_array_equal(out, binarize.threshold(img, 76))

    def test_edge_strategy(self) -> None:
        gray = np.zeros((5, 6), dtype=np.uint8)
        gray[:, 3:] = 255
        out = binarize.binarize(gray, EdgeDetectStrategy(threshold=100.0))
        np.testing.assert_array_equal(out, binarize.edge_detection(gray, 100.0))

    def test_unknown_strategy(self) -> None:
        with pytest.raises(TypeError, match="Unknown binarization strategy"):
            binarize.binarize(solid(1, 1, (0, 0, 0)), object())

    def test_mask_names(self) -> None:
        assert binarize.mask_name(ThresholdStrategy()) == "threshold"
        assert binarize.mask_name(EdgeDetectStrategy()) == "edge-detection"

    def test_strategy_from_config(self) -> None:
        cfg = validators.BinarizeConfig(bw_mode="threshold", threshold=90, invert=True)
        assert binarize.strategy_from_config(cfg) == ThresholdStrategy(threshold=90, invert=True)

        cfg = validators.BinarizeConfig(bw_mode="edge-detect", threshold=400)
        assert binarize.strategy_from_config(cfg) == EdgeDetectStrategy(threshold=400.0)
