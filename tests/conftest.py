"""Shared fixtures for faceguide tests.

Camera and detector are fakes: NO model file or device needed.
"""

import numpy as np
import pytest

from faceguide.vision.capture import CaptureUnavailableError
from faceguide.vision.detector import DetectorInitError
from faceguide.vision.geometry import Landmark


def make_face(center_x: float = 0.5, center_y: float = 0.5, half_w: float = 0.1, half_h: float = 0.15):
    """Four-corner 'face' around a center, in normalized coordinates."""
    return [
        Landmark(center_x - half_w, center_y - half_h),
        Landmark(center_x + half_w, center_y - half_h),
        Landmark(center_x + half_w, center_y + half_h),
        Landmark(center_x - half_w, center_y + half_h),
    ]


class FakeDetector:
    """Returns scripted detection results in order, then no faces."""

    def __init__(self, results=None, fail_open: bool = False, raise_on_detect: bool = False):
        self.results = list(results or [])
        self.fail_open = fail_open
        self.raise_on_detect = raise_on_detect
        self.opened = False
        self.closed = False
        self.timestamps = []

    def open(self):
        if self.fail_open:
            raise DetectorInitError("model missing")
        self.opened = True
        return self

    def detect(self, frame, timestamp_ms):
        self.timestamps.append(timestamp_ms)
        if self.raise_on_detect:
            raise RuntimeError("inference failed")
        if self.results:
            return self.results.pop(0)
        return []

    def close(self):
        self.closed = True


class FakeCamera:
    """Yields the given frames, then reports the device as gone."""

    def __init__(self, frames=None, fail_open: bool = False):
        self.frames = list(frames or [])
        self.fail_open = fail_open
        self.opened = False
        self.released = False

    def open(self):
        if self.fail_open:
            raise CaptureUnavailableError("permission denied")
        self.opened = True
        return self

    def read(self):
        if not self.frames:
            raise CaptureUnavailableError("device disconnected")
        return self.frames.pop(0)

    def release(self):
        self.released = True


class RecordingSink:
    def __init__(self):
        self.analyses = []
        self.states = []

    def publish(self, analysis):
        self.analyses.append(analysis)

    def publish_state(self, state, error=None):
        self.states.append((state, error))


class ListChannel:
    def __init__(self, attached: bool = True):
        self.attached = attached
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)


@pytest.fixture
def bright_frame():
    return np.full((48, 64, 3), 200, dtype=np.uint8)


@pytest.fixture
def dark_frame():
    return np.full((48, 64, 3), 20, dtype=np.uint8)


@pytest.fixture
def centered_face():
    return make_face(0.5, 0.5)


@pytest.fixture
def offset_face():
    return make_face(0.2, 0.5)
