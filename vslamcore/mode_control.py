"""Mode-change requests, reset requests and map-change tracking for the system front end."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from vslamcore.settings import Sensor


class SensorMismatchError(ValueError):
    """A tracking call does not fit the sensor the system was set up for."""


def check_sensor(expected: Sensor, actual: Sensor) -> None:
    """Raise ``SensorMismatchError`` unless ``actual`` is the ``expected`` sensor."""
    expected = Sensor(expected)
    actual = Sensor(actual)
    if expected is not actual:
        raise SensorMismatchError(
            f"tracking for {expected.label} input called, but the input sensor was set to "
            f"{actual.label}"
        )


@dataclass(frozen=True)
class _Pending:
    activate_localization: bool
    deactivate_localization: bool
    reset: bool


class ModeRequests:
    """Thread-safe requests posted by other threads and consumed once per frame."""

    def __init__(self) -> None:
        self._mode_lock = threading.Lock()
        self._reset_lock = threading.Lock()
        self._activate = False
        self._deactivate = False
        self._reset = False

    def activate_localization(self) -> None:
        """Ask to stop local mapping and only track the camera."""
        with self._mode_lock:
            self._activate = True

    def deactivate_localization(self) -> None:
        """Ask to resume local mapping."""
        with self._mode_lock:
            self._deactivate = True

    def request_reset(self) -> None:
        """Ask to clear the map before the next frame."""
        with self._reset_lock:
            self._reset = True

    def take(self) -> _Pending:
        """Return the pending requests and clear them.

        The result has the flags ``activate_localization``,
        ``deactivate_localization`` and ``reset``.
        """
        with self._mode_lock:
            activate, deactivate = self._activate, self._deactivate
            self._activate = False
            self._deactivate = False
        with self._reset_lock:
            reset = self._reset
            self._reset = False
        return _Pending(activate, deactivate, reset)


class MapChangeMonitor:
    """Reports whether the map's big-change counter moved since the last query."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def changed(self, current_index: int) -> bool:
        with self._lock:
            if self._last < current_index:
                self._last = current_index
                return True
            return False