"""Tests for face bounding box and centering."""

import pytest

from faceguide.vision.geometry import (
    BoundingBox,
    Landmark,
    analyze_geometry,
    bounding_box,
    is_centered,
    select_face,
)

from conftest import make_face


class TestBoundingBox:
    def test_componentwise_min_max(self):
        landmarks = [Landmark(0.3, 0.6), Landmark(0.7, 0.2), Landmark(0.5, 0.9)]
        box = bounding_box(landmarks)
        assert box == BoundingBox(min_x=0.3, min_y=0.2, max_x=0.7, max_y=0.9)

    def test_single_landmark_gives_degenerate_box(self):
        box = bounding_box([Landmark(0.4, 0.4)])
        assert box.width == 0
        assert box.height == 0
        assert box.center == (0.4, 0.4)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            bounding_box([])

    @pytest.mark.parametrize("seed", range(5))
    def test_ordering_and_center_inside(self, seed):
        import numpy as np

        rng = np.random.default_rng(seed)
        points = rng.uniform(-0.2, 1.2, size=(50, 2))
        box = bounding_box([Landmark(x, y) for x, y in points])

        assert box.min_x <= box.max_x
        assert box.min_y <= box.max_y
        cx, cy = box.center
        assert box.min_x <= cx <= box.max_x
        assert box.min_y <= cy <= box.max_y


class TestIsCentered:
    def test_centered_face(self):
        assert is_centered(bounding_box(make_face(0.5, 0.5)))

    def test_slightly_off_is_still_centered(self):
        assert is_centered(bounding_box(make_face(0.55, 0.46)))

    def test_far_off_is_not_centered(self):
        assert not is_centered(bounding_box(make_face(0.2, 0.5)))
        assert not is_centered(bounding_box(make_face(0.5, 0.8)))

    def test_boundary_is_exclusive(self):
        # Exact binary fractions so the offset is exactly the threshold
        box = BoundingBox(min_x=0.625, min_y=0.5, max_x=0.625, max_y=0.5)
        assert not is_centered(box, threshold_x=0.125)
        assert is_centered(box, threshold_x=0.125 + 1e-9)

    def test_half_threshold_shift_both_ways(self):
        threshold = 0.125
        for shift in (threshold / 2, -threshold / 2):
            box = bounding_box(make_face(0.5 + shift, 0.5 + shift))
            assert is_centered(box, threshold)

    def test_separate_axis_thresholds(self):
        box = bounding_box(make_face(0.5, 0.65))
        assert not is_centered(box, threshold_x=0.1, threshold_y=0.1)
        assert is_centered(box, threshold_x=0.1, threshold_y=0.2)


class TestSingleFacePolicy:
    def test_select_first_face(self):
        first, second = make_face(0.5, 0.5), make_face(0.1, 0.1)
        assert select_face([first, second]) is first

    def test_select_none(self):
        assert select_face([]) is None
        assert select_face(None) is None

    def test_second_face_does_not_change_result(self):
        face = make_face(0.52, 0.49)
        alone = analyze_geometry([face])
        with_other = analyze_geometry([face, make_face(0.1, 0.9)])
        assert alone == with_other

    def test_no_face(self):
        assert analyze_geometry([]) == (False, False, None)

    def test_detected_but_off_center(self):
        detected, centered, box = analyze_geometry([make_face(0.2, 0.5)])
        assert detected is True
        assert centered is False
        assert box is not None
