"""Frame-cycle driver: capture → detect → analyze → publish.

One capture thread feeds a single-slot channel; the driver takes the newest
frame, runs detection synchronously (one request in flight at most) and hands
an explicit :class:`FrameAnalysis` value to every sink. Frames that arrive
while detection is running replace each other and are dropped, never queued.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Protocol, Sequence

import numpy as np

from faceguide.config import Settings, settings as default_settings
from faceguide.vision.capture import CameraSource, CaptureUnavailableError
from faceguide.vision.detector import DetectorInitError, FaceLandmarkDetector, LandmarkDetector
from faceguide.vision.geometry import BoundingBox, Point, analyze_geometry, select_face
from faceguide.vision.lighting import DEFAULT_LIGHTING_THRESHOLD, mean_brightness

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    CAPTURE_UNAVAILABLE = "capture_unavailable"
    DETECTOR_FAILED = "detector_failed"
    STOPPED = "stopped"

    @property
    def is_failure(self) -> bool:
        return self in (PipelineState.CAPTURE_UNAVAILABLE, PipelineState.DETECTOR_FAILED)


@dataclass(frozen=True)
class FrameStatus:
    """The three readiness signals for one frame."""
    face_detected: bool = False
    face_centered: bool = False
    lighting_good: bool = False


@dataclass(frozen=True)
class FrameAnalysis:
    """Everything the sinks need about one analyzed frame."""
    frame_index: int
    timestamp_ms: int
    status: FrameStatus
    frame: np.ndarray = field(repr=False)
    landmarks: Sequence[Point] | None = field(default=None, repr=False)
    box: BoundingBox | None = None
    brightness: float | None = None


def analyze_frame(
    frame: np.ndarray,
    faces: Sequence[Sequence[Point]] | None,
    center_threshold: float = 0.1,
    lighting_threshold: float = DEFAULT_LIGHTING_THRESHOLD,
    frame_index: int = 0,
    timestamp_ms: int = 0,
) -> FrameAnalysis:
    """
    Derive the frame status from a native frame and its detection result.

    Pure: nothing from earlier frames is consulted. Only the first face is
    used; brightness is taken from the native frame pixels.
    """
    face_detected, face_centered, box = analyze_geometry(faces, center_threshold)
    brightness = mean_brightness(frame)
    lighting_good = brightness is not None and brightness > lighting_threshold

    return FrameAnalysis(
        frame_index=frame_index,
        timestamp_ms=timestamp_ms,
        status=FrameStatus(
            face_detected=face_detected,
            face_centered=face_centered,
            lighting_good=lighting_good,
        ),
        frame=frame,
        landmarks=select_face(faces),
        box=box,
        brightness=brightness,
    )


class FrameSink(Protocol):
    """Receives every analyzed frame and every pipeline state change."""

    def publish(self, analysis: FrameAnalysis) -> None:
        ...

    def publish_state(self, state: PipelineState, error: str | None = None) -> None:
        ...


class LatestFrameSlot:
    """
    Single-slot handoff between the capture thread and the driver.

    ``put`` overwrites an unconsumed frame; ``get`` blocks until a frame is
    available, the slot is closed, or the timeout expires.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._item: tuple[int, int, np.ndarray] | None = None
        self._closed = False
        self._next_index = 0
        self.dropped = 0

    def put(self, frame: np.ndarray, timestamp_ms: int) -> None:
        with self._cond:
            if self._closed:
                return
            if self._item is not None:
                self.dropped += 1
            self._item = (self._next_index, timestamp_ms, frame)
            self._next_index += 1
            self._cond.notify()

    def get(self, timeout: float | None = None) -> tuple[int, int, np.ndarray] | None:
        with self._cond:
            if self._item is None and not self._closed:
                self._cond.wait(timeout)
            item, self._item = self._item, None
            return item

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed


class FramingPipeline:
    """
    Owns the camera, the detector and the frame cycle.

    Usage (caller-driven, e.g. a preview window on the main thread):
        pipeline.open()
        try:
            for analysis in pipeline.frames():
                ...
        finally:
            pipeline.close()

    Usage (background, e.g. behind the API):
        pipeline.start()
        ...
        pipeline.stop()
    """

    def __init__(
        self,
        camera: CameraSource,
        detector: LandmarkDetector,
        sinks: Sequence[FrameSink] = (),
        center_threshold: float = 0.1,
        lighting_threshold: float = DEFAULT_LIGHTING_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.camera = camera
        self.detector = detector
        self.sinks = list(sinks)
        self.center_threshold = center_threshold
        self.lighting_threshold = lighting_threshold
        self.clock = clock

        self.state = PipelineState.STOPPED
        self.error: str | None = None
        self.frames_analyzed = 0

        self._slot = LatestFrameSlot()
        self._stop_event = threading.Event()
        self._capture_thread: threading.Thread | None = None
        self._worker_thread: threading.Thread | None = None
        self._capture_error: CaptureUnavailableError | None = None

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        sinks: Sequence[FrameSink] = (),
    ) -> "FramingPipeline":
        config = config or default_settings
        return cls(
            camera=CameraSource.from_settings(config),
            detector=FaceLandmarkDetector.from_settings(config),
            sinks=sinks,
            center_threshold=config.center_threshold,
            lighting_threshold=config.lighting_threshold,
        )

    def add_sink(self, sink: FrameSink) -> None:
        self.sinks.append(sink)

    # ===== State =====

    def _set_state(self, state: PipelineState, error: str | None = None) -> None:
        self.state = state
        self.error = error
        for sink in self.sinks:
            sink.publish_state(state, error)

    def _fail(self, state: PipelineState, exc: Exception) -> None:
        # Failures are reported once and never retried
        logger.error("Pipeline failed (%s): %s", state.value, exc)
        self._set_state(state, str(exc))

    # ===== Lifecycle =====

    def open(self) -> None:
        """
        Load the detector, open the camera and start the capture thread.

        Raises:
            DetectorInitError: If the landmark model cannot be loaded.
            CaptureUnavailableError: If the camera cannot be opened.
        """
        self._set_state(PipelineState.STARTING)
        self._stop_event.clear()
        self._slot = LatestFrameSlot()
        self._capture_error = None

        try:
            self.detector.open()
        except DetectorInitError as e:
            self._fail(PipelineState.DETECTOR_FAILED, e)
            raise

        try:
            self.camera.open()
        except CaptureUnavailableError as e:
            self._fail(PipelineState.CAPTURE_UNAVAILABLE, e)
            raise

        self._capture_thread = threading.Thread(target=self._capture_loop, name="faceguide-capture", daemon=True)
        self._capture_thread.start()
        self._set_state(PipelineState.RUNNING)

    def _capture_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                frame = self.camera.read()
            except CaptureUnavailableError as e:
                if not self._stop_event.is_set():
                    self._capture_error = e
                break
            self._slot.put(frame, int(self.clock() * 1000))
        self._slot.close()

    def process(self, frame: np.ndarray, timestamp_ms: int | None = None, frame_index: int | None = None) -> FrameAnalysis:
        """Run one full frame cycle on ``frame`` and publish the result."""
        analysis = self._analyze(frame, timestamp_ms, frame_index)
        self._publish(analysis)
        return analysis

    def _analyze(self, frame: np.ndarray, timestamp_ms: int | None, frame_index: int | None) -> FrameAnalysis:
        if timestamp_ms is None:
            timestamp_ms = int(self.clock() * 1000)
        if frame_index is None:
            frame_index = self.frames_analyzed

        try:
            faces = self.detector.detect(frame, timestamp_ms)
        except (RuntimeError, ValueError) as e:
            # A failed detection only costs this frame
            logger.debug("Detection failed on frame %d: %s", frame_index, e)
            faces = []

        analysis = analyze_frame(
            frame,
            faces,
            center_threshold=self.center_threshold,
            lighting_threshold=self.lighting_threshold,
            frame_index=frame_index,
            timestamp_ms=timestamp_ms,
        )
        self.frames_analyzed += 1
        return analysis

    def _publish(self, analysis: FrameAnalysis) -> None:
        for sink in self.sinks:
            sink.publish(analysis)

    def frames(self, poll_interval: float = 0.5) -> Iterator[FrameAnalysis]:
        """
        Yield one analysis per consumed frame until stopped.

        Raises:
            CaptureUnavailableError: If the camera stops delivering frames.
        """
        while not self._stop_event.is_set():
            item = self._slot.get(timeout=poll_interval)
            if item is None:
                if self._slot.closed:
                    break
                continue

            frame_index, timestamp_ms, frame = item
            analysis = self._analyze(frame, timestamp_ms, frame_index)
            if self._stop_event.is_set():
                # Torn down while detecting: the result is discarded
                break
            self._publish(analysis)
            yield analysis

        if self._capture_error is not None and not self._stop_event.is_set():
            self._fail(PipelineState.CAPTURE_UNAVAILABLE, self._capture_error)
            raise self._capture_error

    def run(self) -> None:
        """Blocking frame cycle; failures end the run with a failure state."""
        try:
            self.open()
            for _ in self.frames():
                pass
        except (CaptureUnavailableError, DetectorInitError):
            # Already reported to the sinks as a failure state
            return
        finally:
            self.close()

    def start(self) -> threading.Thread:
        """Run the frame cycle on a background thread."""
        if self._worker_thread is not None and self._worker_thread.is_alive():
            return self._worker_thread
        self._stop_event.clear()
        self._worker_thread = threading.Thread(target=self.run, name="faceguide-pipeline", daemon=True)
        self._worker_thread.start()
        return self._worker_thread

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop, release the camera and wait for the worker."""
        self._stop_event.set()
        self._slot.close()
        worker = self._worker_thread
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        self._worker_thread = None
        self.close()

    def close(self) -> None:
        self._stop_event.set()
        self._slot.close()

        # The capture thread exits after its current read
        capture = self._capture_thread
        if capture is not None and capture is not threading.current_thread():
            capture.join(timeout=2.0)
        self._capture_thread = None
        self.camera.release()

        self.detector.close()
        if not self.state.is_failure and self.state is not PipelineState.STOPPED:
            self._set_state(PipelineState.STOPPED)
