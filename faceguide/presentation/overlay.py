"""Landmark mesh and status panel rendering with OpenCV."""

from functools import lru_cache
from typing import Sequence

import cv2
import numpy as np

from faceguide.pipeline import FrameAnalysis, FrameStatus, PipelineState
from faceguide.vision.geometry import Point
from faceguide.vision.mapper import DisplayGeometry, fit_frame


@lru_cache(maxsize=1)
def face_mesh_tesselation() -> tuple[tuple[int, int], ...]:
    """Edges of the MediaPipe face mesh tesselation."""
    from mediapipe.tasks.python.vision import FaceLandmarksConnections

    return tuple((c.start, c.end) for c in FaceLandmarksConnections.FACE_LANDMARKS_TESSELATION)


def hex_to_bgr(color: str) -> tuple[int, int, int]:
    """Convert ``#RRGGBB`` to an OpenCV BGR tuple."""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #RRGGBB color, got {color!r}")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


class LandmarkOverlay:
    """
    Draws one face's mesh onto a container-sized canvas.

    Landmarks are scaled to the canvas and mapped through the display
    transform so they line up with the letterboxed or cropped video.

    Args:
        connections: Landmark index pairs to connect (face mesh by default).
        color: ``#RRGGBB`` line color.
        line_width: Line thickness in pixels.
    """

    def __init__(
        self,
        connections: Sequence[tuple[int, int]] | None = None,
        color: str = "#F2D668",
        line_width: int = 1,
    ):
        self._connections = tuple(connections) if connections is not None else None
        self._color = hex_to_bgr(color)
        self._line_width = line_width

    @property
    def connections(self) -> tuple[tuple[int, int], ...]:
        if self._connections is None:
            self._connections = face_mesh_tesselation()
        return self._connections

    def project(self, landmarks: Sequence[Point], geometry: DisplayGeometry) -> np.ndarray:
        """Landmark positions in canvas pixels, shape (N, 2)."""
        transform = geometry.transform()
        pts = np.array([[lm.x, lm.y] for lm in landmarks], dtype=np.float64).reshape(-1, 2)
        pts[:, 0] = transform.sx * pts[:, 0] * geometry.container_width + transform.tx
        pts[:, 1] = transform.sy * pts[:, 1] * geometry.container_height + transform.ty
        return pts

    def draw(
        self,
        canvas: np.ndarray,
        landmarks: Sequence[Point] | None,
        geometry: DisplayGeometry,
    ) -> np.ndarray:
        """Draw the mesh in place and return the canvas."""
        if not landmarks:
            return canvas

        pts = self.project(landmarks, geometry)
        count = len(pts)
        edges = [(a, b) for a, b in self.connections if a < count and b < count]
        if not edges:
            return canvas

        segments = np.rint(pts[np.array(edges)]).astype(np.int32)
        cv2.polylines(canvas, list(segments), False, self._color, self._line_width, cv2.LINE_AA)
        return canvas


class StatusPanel:
    """
    Yes/No readout of the three signals in the bottom-left corner.

    Args:
        font_scale: OpenCV font scale.
        margin: Distance from the canvas edges in pixels.
    """

    LABELS = ("Face Detected", "Face Centered", "Good Lighting")

    def __init__(self, font_scale: float = 0.5, margin: int = 10):
        self._font = cv2.FONT_HERSHEY_SIMPLEX
        self._font_scale = font_scale
        self._margin = margin
        self._thickness = 1

    @property
    def line_height(self) -> int:
        return int(22 * self._font_scale / 0.5)

    def lines(self, status: FrameStatus) -> list[str]:
        values = (status.face_detected, status.face_centered, status.lighting_good)
        return [f"{label}: {yes_no(value)}" for label, value in zip(self.LABELS, values)]

    def draw(
        self,
        canvas: np.ndarray,
        status: FrameStatus,
        state: PipelineState | None = None,
        error: str | None = None,
    ) -> np.ndarray:
        """Draw the panel in place and return the canvas."""
        if state is not None and state.is_failure:
            lines = [f"Unavailable: {state.value}"]
            if error:
                lines.append(error[:60])
            color = (80, 80, 255)
        else:
            lines = self.lines(status)
            color = (255, 255, 255)

        widths = [cv2.getTextSize(line, self._font, self._font_scale, self._thickness)[0][0] for line in lines]
        pad = 5
        box_w = max(widths) + 2 * pad
        box_h = self.line_height * len(lines) + 2 * pad
        height = canvas.shape[0]
        x0 = self._margin
        y0 = max(0, height - self._margin - box_h)
        x1 = min(canvas.shape[1], x0 + box_w)
        y1 = min(height, y0 + box_h)

        # rgba(0,0,0,0.5) background
        roi = canvas[y0:y1, x0:x1]
        if roi.size:
            canvas[y0:y1, x0:x1] = (roi * 0.5).astype(canvas.dtype)

        y = y0 + pad + self.line_height - 6
        for line in lines:
            cv2.putText(canvas, line, (x0 + pad, y), self._font, self._font_scale, color, self._thickness, cv2.LINE_AA)
            y += self.line_height
        return canvas


def render_preview(
    analysis: FrameAnalysis,
    geometry: DisplayGeometry,
    overlay: LandmarkOverlay,
    panel: StatusPanel | None = None,
    state: PipelineState | None = None,
    error: str | None = None,
) -> np.ndarray:
    """
    Compose a fresh preview canvas for one frame.

    The canvas is rebuilt from the video frame every call, so nothing drawn
    for earlier frames survives.
    """
    canvas = fit_frame(analysis.frame, geometry)
    overlay.draw(canvas, analysis.landmarks, geometry)
    if panel is not None:
        panel.draw(canvas, analysis.status, state, error)
    return canvas
