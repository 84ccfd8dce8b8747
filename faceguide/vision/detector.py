"""Face landmark detection with MediaPipe FaceLandmarker (Tasks API)."""

import logging
import urllib.request
from pathlib import Path
from typing import Protocol, Sequence

import cv2
import numpy as np

from faceguide.config import Settings, settings as default_settings
from faceguide.vision.geometry import Point

logger = logging.getLogger(__name__)

# FaceMesh topology: 468 face points, plus 10 iris points when refined
BASE_LANDMARK_COUNT = 468


class DetectorInitError(RuntimeError):
    """The landmark model could not be loaded; the pipeline cannot proceed."""


class LandmarkDetector(Protocol):
    """One-frame-at-a-time landmark detector."""

    def open(self) -> "LandmarkDetector":
        ...

    def detect(self, frame: np.ndarray, timestamp_ms: int) -> list[Sequence[Point]]:
        ...

    def close(self) -> None:
        ...


def download_model(url: str, model_path: Path | str, force: bool = False) -> Path:
    """Download the FaceLandmarker model if not present."""
    model_path = Path(model_path)
    model_path.parent.mkdir(parents=True, exist_ok=True)
    if model_path.exists() and not force:
        return model_path

    logger.info("Downloading face landmarker model to %s", model_path)
    tmp_path = model_path.with_suffix(model_path.suffix + ".part")
    try:
        urllib.request.urlretrieve(url, tmp_path)
        tmp_path.replace(model_path)
    finally:
        tmp_path.unlink(missing_ok=True)
    logger.info("Download complete")
    return model_path


class FaceLandmarkDetector:
    """
    Wraps MediaPipe FaceLandmarker in VIDEO running mode.

    Calls are synchronous, so at most one detection is in flight. Results are
    lists of faces, each a list of normalized landmarks with ``x``/``y``.

    Usage:
        with FaceLandmarkDetector.from_settings() as detector:
            faces = detector.detect(frame_bgr, timestamp_ms)
    """

    def __init__(
        self,
        model_path: Path | str,
        max_num_faces: int = 1,
        refine_landmarks: bool = True,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.model_path = Path(model_path)
        self.max_num_faces = max_num_faces
        self.refine_landmarks = refine_landmarks
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self._landmarker = None
        self._mp = None
        self._last_timestamp_ms = -1

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "FaceLandmarkDetector":
        config = config or default_settings
        return cls(
            model_path=config.model_path,
            max_num_faces=config.max_num_faces,
            refine_landmarks=config.refine_landmarks,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
        )

    @property
    def is_open(self) -> bool:
        return self._landmarker is not None

    def open(self) -> "FaceLandmarkDetector":
        """
        Load the model and create the landmarker.

        Raises:
            DetectorInitError: If the model is missing or fails to load.
        """
        if self._landmarker is not None:
            return self

        if not self.model_path.exists():
            raise DetectorInitError(
                f"Face Landmarker model not found at {self.model_path}. "
                "Run `faceguide download-model` to fetch it."
            )

        try:
            import mediapipe as mp
        except ImportError as e:
            raise DetectorInitError("MediaPipe is not installed. Run: pip install mediapipe") from e

        BaseOptions = mp.tasks.BaseOptions
        FaceLandmarker = mp.tasks.vision.FaceLandmarker
        FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
        VisionRunningMode = mp.tasks.vision.RunningMode

        options = FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=VisionRunningMode.VIDEO,
            num_faces=self.max_num_faces,
            min_face_detection_confidence=self.min_detection_confidence,
            min_face_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )

        try:
            self._landmarker = FaceLandmarker.create_from_options(options)
            self._mp = mp
        except (RuntimeError, ValueError) as e:
            raise DetectorInitError(f"Failed to create face landmarker: {e}") from e

        self._last_timestamp_ms = -1
        logger.info("Face landmarker loaded from %s (max faces: %d)", self.model_path, self.max_num_faces)
        return self

    def detect(self, frame: np.ndarray, timestamp_ms: int) -> list[Sequence[Point]]:
        """
        Detect face landmarks on a BGR frame.

        Timestamps must increase for VIDEO mode; non-increasing values are
        bumped by one millisecond.
        """
        if self._landmarker is None:
            raise RuntimeError("Detector is not open")

        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb_frame)
        results = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        if not results.face_landmarks:
            return []

        faces = list(results.face_landmarks)
        if not self.refine_landmarks:
            faces = [face[:BASE_LANDMARK_COUNT] for face in faces]
        return faces

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
