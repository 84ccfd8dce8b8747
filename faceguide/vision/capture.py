"""Camera capture via OpenCV."""

import logging

import cv2
import numpy as np

from faceguide.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class CaptureUnavailableError(RuntimeError):
    """The camera could not be opened or stopped delivering frames."""


def _resolve_source(source: int | str) -> int | str:
    # "0" from the environment means device 0, not a file called "0"
    if isinstance(source, str) and source.strip().isdigit():
        return int(source)
    return source


class CameraSource:
    """
    Live frame source backed by ``cv2.VideoCapture``.

    Usage:
        with CameraSource(0) as camera:
            frame = camera.read()
    """

    def __init__(
        self,
        source: int | str = 0,
        width: int | None = None,
        height: int | None = None,
        fps: float | None = None,
    ):
        self.source = _resolve_source(source)
        self.width = width
        self.height = height
        self.fps = fps
        self._cap: cv2.VideoCapture | None = None

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "CameraSource":
        config = config or default_settings
        return cls(
            source=config.camera_index,
            width=config.capture_width,
            height=config.capture_height,
            fps=config.target_fps,
        )

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def open(self) -> "CameraSource":
        """
        Open the device and apply the requested resolution.

        Raises:
            CaptureUnavailableError: If the device is absent or access is denied.
        """
        if self.is_open:
            return self

        cap = cv2.VideoCapture(self.source)
        if not cap.isOpened():
            cap.release()
            raise CaptureUnavailableError(f"Cannot open camera: {self.source}")

        if self.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        if self.fps:
            cap.set(cv2.CAP_PROP_FPS, self.fps)

        self._cap = cap
        logger.info(
            "Camera %s opened at %dx%d",
            self.source,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        return self

    def read(self) -> np.ndarray:
        """
        Read the next decoded BGR frame at native resolution.

        Raises:
            CaptureUnavailableError: If the camera is closed or returns no frame.
        """
        if self._cap is None:
            raise CaptureUnavailableError("Camera is not open")

        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise CaptureUnavailableError(f"Camera {self.source} stopped delivering frames")
        return frame

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera %s released", self.source)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
