"""Viewer settings and the stop/finish handshake between the viewer and other threads."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Mapping

_DEFAULT_FPS = 30.0
_DEFAULT_WIDTH = 640
_DEFAULT_HEIGHT = 480


def _number(values: Mapping[str, Any], key: str) -> float:
    value = values.get(key)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"setting {key!r} is not a number: {value!r}") from None


@dataclass(frozen=True)
class ViewerSettings:
    """Refresh rate, image size and initial viewpoint of the map viewer."""

    fps: float = _DEFAULT_FPS
    image_width: int = _DEFAULT_WIDTH
    image_height: int = _DEFAULT_HEIGHT
    viewpoint_x: float = 0.0
    viewpoint_y: float = 0.0
    viewpoint_z: float = 0.0
    viewpoint_f: float = 0.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ViewerSettings":
        """Build from parsed settings; bad rates and sizes fall back to defaults."""
        fps = _number(values, "Camera.fps")
        if fps < 1:
            fps = _DEFAULT_FPS
        width = int(_number(values, "Camera.width"))
        height = int(_number(values, "Camera.height"))
        if width < 1 or height < 1:
            width, height = _DEFAULT_WIDTH, _DEFAULT_HEIGHT
        return cls(
            fps=fps,
            image_width=width,
            image_height=height,
            viewpoint_x=_number(values, "Viewer.ViewpointX"),
            viewpoint_y=_number(values, "Viewer.ViewpointY"),
            viewpoint_z=_number(values, "Viewer.ViewpointZ"),
            viewpoint_f=_number(values, "Viewer.ViewpointF"),
        )

    @property
    def frame_period_ms(self) -> float:
        """Milliseconds between two drawn frames."""
        return 1e3 / self.fps


class ViewerControl:
    """Thread-safe stop and finish flags of a viewer loop.

    A viewer that has not started counts as both stopped and finished.
    """

    def __init__(self) -> None:
        self._finish_lock = threading.Lock()
        self._stop_lock = threading.Lock()
        self._finish_requested = False
        self._finished = True
        self._stopped = True
        self._stop_requested = False

    def start(self) -> None:
        """Mark the loop as running."""
        with self._finish_lock:
            self._finished = False
        with self._stop_lock:
            self._stopped = False

    def request_finish(self) -> None:
        with self._finish_lock:
            self._finish_requested = True

    def check_finish(self) -> bool:
        with self._finish_lock:
            return self._finish_requested

    def set_finish(self) -> None:
        with self._finish_lock:
            self._finished = True

    def is_finished(self) -> bool:
        with self._finish_lock:
            return self._finished

    def request_stop(self) -> None:
        """Ask a running loop to pause; ignored when already stopped."""
        with self._stop_lock:
            if not self._stopped:
                self._stop_requested = True

    def is_stopped(self) -> bool:
        with self._stop_lock:
            return self._stopped

    def stop(self) -> bool:
        """Honour a pending stop request; returns whether the loop is now stopped."""
        with self._stop_lock, self._finish_lock:
            if self._finish_requested:
                return False
            if self._stop_requested:
                self._stopped = True
                self._stop_requested = False
                return True
            return False

    def release(self) -> None:
        """Let a stopped loop run again."""
        with self._stop_lock:
            self._stopped = False