"""
Vision module for per-frame face framing analysis.

Components:
- geometry: Face bounding box and centering checks on normalized landmarks
- lighting: Mean frame brightness and the good-lighting check
- mapper: Contain/cover display geometry and the overlay transform
- detector: MediaPipe FaceLandmarker wrapper
- capture: OpenCV camera source
"""

from faceguide.vision.capture import CameraSource, CaptureUnavailableError
from faceguide.vision.detector import DetectorInitError, FaceLandmarkDetector, download_model
from faceguide.vision.geometry import BoundingBox, Landmark, analyze_geometry, bounding_box, is_centered, select_face
from faceguide.vision.lighting import is_lighting_good, mean_brightness
from faceguide.vision.mapper import DisplayGeometry, DisplayTransform, FitMode, compute_transform, fit_frame

__all__ = [
    "CameraSource", "CaptureUnavailableError",
    "FaceLandmarkDetector", "DetectorInitError", "download_model",
    "Landmark", "BoundingBox", "bounding_box", "is_centered", "select_face", "analyze_geometry",
    "mean_brightness", "is_lighting_good",
    "DisplayGeometry", "DisplayTransform", "FitMode", "compute_transform", "fit_frame",
]
