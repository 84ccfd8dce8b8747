"""Overlay rendering and status publishing."""

from faceguide.presentation.overlay import LandmarkOverlay, StatusPanel, render_preview
from faceguide.presentation.sink import (
    HostSink,
    SnapshotThrottle,
    StatusBoard,
    StreamChannel,
    build_host_message,
    encode_snapshot,
)

__all__ = [
    "LandmarkOverlay", "StatusPanel", "render_preview",
    "HostSink", "SnapshotThrottle", "StatusBoard", "StreamChannel",
    "build_host_message", "encode_snapshot",
]
