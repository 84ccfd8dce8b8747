"""Publishing analyzed frames: status board and host messages."""

import base64
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol, TextIO

import cv2
import numpy as np

from faceguide.api.models import HostMessage, StateMessage
from faceguide.pipeline import FrameAnalysis, FrameStatus, PipelineState

logger = logging.getLogger(__name__)

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def encode_snapshot(frame: np.ndarray) -> str:
    """
    Encode a native frame as a PNG data URI.

    Raises:
        ValueError: If OpenCV cannot encode the frame.
    """
    ok, buffer = cv2.imencode(".png", frame)
    if not ok:
        raise ValueError(f"Failed to PNG-encode frame of shape {frame.shape}")
    return PNG_DATA_URI_PREFIX + base64.b64encode(buffer.tobytes()).decode("ascii")


def build_host_message(status: FrameStatus, image: str | None = None) -> HostMessage:
    return HostMessage(
        lighting=status.lighting_good,
        position=status.face_centered,
        face_found=status.face_detected,
        image=image,
    )


class SnapshotThrottle:
    """
    Rate limit for snapshot encoding.

    ``interval`` of 0 means every frame gets a snapshot.
    """

    def __init__(self, interval: float = 1.0, clock: Callable[[], float] = time.monotonic):
        if interval < 0:
            raise ValueError("Snapshot interval cannot be negative")
        self.interval = interval
        self.clock = clock
        self._last: float | None = None

    def due(self) -> bool:
        """Return True and restart the interval when a snapshot is due."""
        now = self.clock()
        if self.interval == 0 or self._last is None or now - self._last >= self.interval:
            self._last = now
            return True
        return False

    def reset(self) -> None:
        self._last = None


@dataclass(frozen=True)
class BoardSnapshot:
    """Immutable view of the latest published status."""
    status: FrameStatus
    state: PipelineState
    error: str | None = None
    frame_index: int | None = None
    brightness: float | None = None
    frame: np.ndarray | None = None
    updated_at: float = 0.0


class StatusBoard:
    """
    Holds the most recent frame status and pipeline state.

    Each publish swaps in a new immutable :class:`BoardSnapshot`, so readers
    on other threads never see a partially updated status.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = BoardSnapshot(status=FrameStatus(), state=PipelineState.STOPPED)

    @property
    def latest(self) -> BoardSnapshot:
        return self._snapshot

    def publish(self, analysis: FrameAnalysis) -> None:
        with self._lock:
            current = self._snapshot
            self._snapshot = BoardSnapshot(
                status=analysis.status,
                state=current.state,
                error=current.error,
                frame_index=analysis.frame_index,
                brightness=analysis.brightness,
                frame=analysis.frame,
                updated_at=time.time(),
            )

    def publish_state(self, state: PipelineState, error: str | None = None) -> None:
        with self._lock:
            current = self._snapshot
            self._snapshot = BoardSnapshot(
                status=current.status,
                state=state,
                error=error,
                frame_index=current.frame_index,
                brightness=current.brightness,
                frame=current.frame,
                updated_at=time.time(),
            )


class HostChannel(Protocol):
    """Opaque transport to an embedding host."""

    @property
    def attached(self) -> bool:
        ...

    def send(self, payload: dict) -> None:
        ...


class HostSink:
    """
    Emits one host message per analyzed frame while a host is attached.

    Snapshots are encoded only when the throttle allows; other messages carry
    ``image = None``. Without an attached host nothing is encoded or sent.
    """

    def __init__(self, channel: HostChannel, throttle: SnapshotThrottle | None = None):
        self.channel = channel
        self.throttle = throttle or SnapshotThrottle()

    def publish(self, analysis: FrameAnalysis) -> None:
        if not self.channel.attached:
            return

        image = None
        if self.throttle.due():
            try:
                image = encode_snapshot(analysis.frame)
            except ValueError as e:
                logger.warning("Snapshot skipped for frame %d: %s", analysis.frame_index, e)
                self.throttle.reset()

        message = build_host_message(analysis.status, image)
        self.channel.send(message.to_payload())

    def publish_state(self, state: PipelineState, error: str | None = None) -> None:
        if not self.channel.attached:
            return
        self.channel.send(StateMessage(state=state, error=error).model_dump(mode="json"))


class StreamChannel:
    """Writes each host payload as one JSON line (e.g. to a parent process)."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    @property
    def attached(self) -> bool:
        return not self.stream.closed

    def send(self, payload: dict) -> None:
        self.stream.write(json.dumps(payload) + "\n")
        self.stream.flush()
