"""Mapping between normalized landmark space and the displayed video region.

The video is shown inside a container (window or host viewport) using one of
two fit policies:

- contain: the whole frame is visible, letterboxed on the short side
- cover: the container is filled, the frame is cropped on the long side

The overlay canvas has the container's size. Landmarks are first scaled to
the canvas size and then pushed through a :class:`DisplayTransform` so that
they land on the visible part of the video.
"""

from dataclasses import dataclass
from enum import Enum

import cv2
import numpy as np


class FitMode(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"


@dataclass(frozen=True)
class DisplayTransform:
    """Affine transform ``(sx, 0, 0, sy, tx, ty)`` in canvas coordinates."""
    sx: float
    sy: float
    tx: float
    ty: float

    def apply(self, x: float, y: float) -> tuple[float, float]:
        """Map a canvas-space point onto the visible video region."""
        return self.sx * x + self.tx, self.sy * y + self.ty

    def to_matrix(self) -> np.ndarray:
        """2x3 matrix for ``cv2.transform`` / ``cv2.warpAffine``."""
        return np.array(
            [[self.sx, 0.0, self.tx], [0.0, self.sy, self.ty]],
            dtype=np.float64,
        )


@dataclass(frozen=True)
class DisplayGeometry:
    """Container and native video sizes plus the fit policy between them."""
    container_width: float
    container_height: float
    video_width: float
    video_height: float
    fit_mode: FitMode = FitMode.CONTAIN

    def __post_init__(self):
        dims = (self.container_width, self.container_height, self.video_width, self.video_height)
        if any(d <= 0 for d in dims):
            raise ValueError(f"Display geometry needs positive dimensions, got {dims}")
        # Accept plain strings from config
        object.__setattr__(self, "fit_mode", FitMode(self.fit_mode))

    @property
    def scale(self) -> float:
        sx = self.container_width / self.video_width
        sy = self.container_height / self.video_height
        return min(sx, sy) if self.fit_mode is FitMode.CONTAIN else max(sx, sy)

    @property
    def display_width(self) -> float:
        return self.video_width * self.scale

    @property
    def display_height(self) -> float:
        return self.video_height * self.scale

    @property
    def offset_x(self) -> float:
        return (self.container_width - self.display_width) / 2

    @property
    def offset_y(self) -> float:
        return (self.container_height - self.display_height) / 2

    def transform(self) -> DisplayTransform:
        """Affine transform from canvas-scaled detector space to the display."""
        return DisplayTransform(
            sx=self.display_width / self.container_width,
            sy=self.display_height / self.container_height,
            tx=self.offset_x,
            ty=self.offset_y,
        )

    def frame_transform(self) -> DisplayTransform:
        """Affine transform from native frame pixels to container pixels."""
        scale = self.scale
        return DisplayTransform(sx=scale, sy=scale, tx=self.offset_x, ty=self.offset_y)

    def landmark_to_display(self, x: float, y: float) -> tuple[float, float]:
        """Map a normalized landmark to container pixel coordinates."""
        return self.transform().apply(x * self.container_width, y * self.container_height)


def compute_transform(
    container_width: float,
    container_height: float,
    video_width: float,
    video_height: float,
    fit_mode: FitMode | str = FitMode.CONTAIN,
) -> DisplayTransform:
    """Convenience wrapper building the geometry and returning its transform."""
    geometry = DisplayGeometry(container_width, container_height, video_width, video_height, FitMode(fit_mode))
    return geometry.transform()


def fit_frame(
    frame: np.ndarray,
    geometry: DisplayGeometry,
    background: tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """
    Render a frame into a container-sized canvas using the fit policy.

    Contain letterboxes with ``background``; cover crops the overflow.
    """
    cw, ch = int(round(geometry.container_width)), int(round(geometry.container_height))
    return cv2.warpAffine(
        frame,
        geometry.frame_transform().to_matrix(),
        (cw, ch),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=background,
    )
