"""Face bounding box and centering checks on normalized landmarks."""

from dataclasses import dataclass
from typing import Protocol, Sequence

# Centering is evaluated in normalized frame space, so the reference point
# is the middle of the source frame regardless of how it is displayed.
FRAME_CENTER = (0.5, 0.5)


class Point(Protocol):
    """Anything with normalized ``x``/``y`` (MediaPipe landmarks, Landmark)."""

    x: float
    y: float


@dataclass(frozen=True)
class Landmark:
    """A normalized 2D facial keypoint relative to the frame size."""
    x: float
    y: float


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box enclosing one face's landmarks."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return (self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2


def bounding_box(landmarks: Sequence[Point]) -> BoundingBox:
    """
    Compute the componentwise min/max box over all landmarks.

    Raises:
        ValueError: If no landmarks are given.
    """
    if not landmarks:
        raise ValueError("Cannot compute a bounding box without landmarks")

    xs = [lm.x for lm in landmarks]
    ys = [lm.y for lm in landmarks]
    return BoundingBox(min_x=min(xs), min_y=min(ys), max_x=max(xs), max_y=max(ys))


def is_centered(
    box: BoundingBox,
    threshold_x: float = 0.1,
    threshold_y: float | None = None,
    reference: tuple[float, float] = FRAME_CENTER,
) -> bool:
    """
    Check whether the box midpoint lies within the threshold of the reference.

    The comparison is strict: a center exactly ``threshold`` away is not
    centered.

    Args:
        box: Face bounding box in normalized coordinates
        threshold_x: Allowed horizontal offset (fraction of frame width)
        threshold_y: Allowed vertical offset (defaults to ``threshold_x``)
        reference: Point to compare against (frame center by default)
    """
    if threshold_y is None:
        threshold_y = threshold_x

    center_x, center_y = box.center
    ref_x, ref_y = reference
    return abs(center_x - ref_x) < threshold_x and abs(center_y - ref_y) < threshold_y


def select_face(faces: Sequence[Sequence[Point]] | None) -> Sequence[Point] | None:
    """Return the first detected face; any further faces are ignored."""
    if not faces:
        return None
    face = faces[0]
    return face if face else None


def analyze_geometry(
    faces: Sequence[Sequence[Point]] | None,
    threshold: float = 0.1,
) -> tuple[bool, bool, BoundingBox | None]:
    """
    Classify presence and centering for the first face of a detection result.

    Returns:
        (face_detected, face_centered, bounding_box). With no face the box is
        None and both flags are False.
    """
    face = select_face(faces)
    if face is None:
        return False, False, None

    box = bounding_box(face)
    return True, is_centered(box, threshold), box
