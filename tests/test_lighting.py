"""Tests for frame brightness and the lighting check."""

import numpy as np
import pytest

from faceguide.vision.lighting import is_lighting_good, mean_brightness


class TestMeanBrightness:
    def test_black_frame(self):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        assert mean_brightness(frame) == 0.0
        assert not is_lighting_good(frame)

    def test_white_frame(self):
        frame = np.full((10, 10, 3), 255, dtype=np.uint8)
        assert mean_brightness(frame) == pytest.approx(255.0)
        assert is_lighting_good(frame)

    def test_uniform_at_threshold_is_not_good(self):
        frame = np.full((10, 10, 3), 100, dtype=np.uint8)
        assert mean_brightness(frame) == pytest.approx(100.0)
        assert not is_lighting_good(frame, threshold=100)

    def test_just_above_threshold(self):
        frame = np.full((10, 10, 3), 101, dtype=np.uint8)
        assert is_lighting_good(frame, threshold=100)

    def test_channel_order_does_not_matter(self):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        frame[:, :, 0] = 30
        frame[:, :, 1] = 60
        frame[:, :, 2] = 90
        assert mean_brightness(frame) == pytest.approx(60.0)
        assert mean_brightness(frame[:, :, ::-1]) == pytest.approx(60.0)

    def test_alpha_channel_ignored(self):
        frame = np.full((8, 8, 4), 50, dtype=np.uint8)
        frame[:, :, 3] = 255
        assert mean_brightness(frame) == pytest.approx(50.0)

    def test_grayscale(self):
        assert mean_brightness(np.full((5, 5), 120, dtype=np.uint8)) == pytest.approx(120.0)
        assert mean_brightness(np.full((5, 5, 1), 120, dtype=np.uint8)) == pytest.approx(120.0)

    def test_half_bright_half_dark(self):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        frame[:5] = 240
        assert mean_brightness(frame) == pytest.approx(120.0)

    def test_zero_area_frame(self):
        frame = np.zeros((0, 10, 3), dtype=np.uint8)
        assert mean_brightness(frame) is None
        assert not is_lighting_good(frame)

    def test_none_frame(self):
        assert mean_brightness(None) is None

    def test_unsupported_shape(self):
        with pytest.raises(ValueError):
            mean_brightness(np.zeros((4, 4, 2), dtype=np.uint8))
