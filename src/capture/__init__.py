"""Capture module -- window acquisition, serial scheduling and periodic frame capture."""

from .acquisition import (
    AcquisitionState,
    AcquisitionStateMachine,
    AcquisitionStatus,
)
from .capture_scheduler import CaptureScheduler, TickScope
from .listener import ListenerRef
from .scheduler import SerialScheduler, TimerHandle
from .window_capture import WindowCapture
from .window_source import WindowMetadata, WindowSource

__all__ = [
    "AcquisitionState",
    "AcquisitionStateMachine",
    "AcquisitionStatus",
    "CaptureScheduler",
    "ListenerRef",
    "SerialScheduler",
    "TickScope",
    "TimerHandle",
    "WindowCapture",
    "WindowMetadata",
    "WindowSource",
]
