"""Tests for the FaceLandmarker wrapper, with MediaPipe replaced by stubs."""

from types import SimpleNamespace

import numpy as np
import pytest

from faceguide.vision.detector import BASE_LANDMARK_COUNT, DetectorInitError, FaceLandmarkDetector
from faceguide.vision.geometry import Landmark


class StubLandmarker:
    """Records timestamps and returns fixed results like ``detect_for_video``."""

    def __init__(self, faces):
        self.faces = faces
        self.timestamps = []
        self.images = []
        self.closed = False

    def detect_for_video(self, image, timestamp_ms):
        self.images.append(image)
        self.timestamps.append(timestamp_ms)
        return SimpleNamespace(face_landmarks=self.faces)

    def close(self):
        self.closed = True


STUB_MP = SimpleNamespace(
    Image=lambda image_format, data: SimpleNamespace(image_format=image_format, data=data),
    ImageFormat=SimpleNamespace(SRGB="srgb"),
)


def refined_face():
    return [Landmark(i / 478, 0.5) for i in range(478)]


def make_detector(faces, refine_landmarks=True):
    detector = FaceLandmarkDetector("face_landmarker.task", refine_landmarks=refine_landmarks)
    landmarker = StubLandmarker(faces)
    detector._landmarker = landmarker
    detector._mp = STUB_MP
    return detector, landmarker


@pytest.fixture
def frame():
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    frame[:, :, 0] = 255  # blue in BGR
    return frame


class TestDetect:
    def test_timestamps_strictly_increase(self, frame):
        detector, landmarker = make_detector([])

        for ts in (5, 5, 3):
            detector.detect(frame, ts)

        assert landmarker.timestamps == [5, 6, 7]

    def test_increasing_timestamps_pass_through(self, frame):
        detector, landmarker = make_detector([])

        for ts in (10, 40, 70):
            detector.detect(frame, ts)

        assert landmarker.timestamps == [10, 40, 70]

    def test_frame_converted_to_rgb(self, frame):
        detector, landmarker = make_detector([])
        detector.detect(frame, 0)

        image = landmarker.images[0]
        assert image.image_format == "srgb"
        assert image.data[0, 0].tolist() == [0, 0, 255]

    def test_unrefined_faces_cut_to_base_mesh(self, frame):
        detector, _ = make_detector([refined_face()], refine_landmarks=False)

        faces = detector.detect(frame, 0)

        assert len(faces) == 1
        assert len(faces[0]) == BASE_LANDMARK_COUNT == 468

    def test_refined_faces_keep_iris_points(self, frame):
        detector, _ = make_detector([refined_face()], refine_landmarks=True)
        assert len(detector.detect(frame, 0)[0]) == 478

    def test_no_faces(self, frame):
        detector, _ = make_detector([])
        assert detector.detect(frame, 0) == []

    def test_close(self, frame):
        detector, landmarker = make_detector([])
        detector.close()

        assert landmarker.closed
        assert not detector.is_open
        with pytest.raises(RuntimeError):
            detector.detect(frame, 0)


class TestOpen:
    def test_missing_model(self, tmp_path):
        detector = FaceLandmarkDetector(tmp_path / "missing.task")
        with pytest.raises(DetectorInitError, match="download-model"):
            detector.open()
        assert not detector.is_open
