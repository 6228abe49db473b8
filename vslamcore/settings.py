"""Camera and feature-extractor settings read from a YAML calibration file."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import numpy as np
import yaml

_DEFAULT_FPS = 30.0
_DEPTH_FACTOR_EPS = 1e-5


class Sensor(enum.IntEnum):
    """Kind of input the system is fed with."""

    MONOCULAR = 0
    STEREO = 1
    RGBD = 2

    @property
    def label(self) -> str:
        return {
            Sensor.MONOCULAR: "Monocular",
            Sensor.STEREO: "Stereo",
            Sensor.RGBD: "RGB-D",
        }[self]


class _SettingsLoader(yaml.SafeLoader):
    """YAML loader that also understands OpenCV matrix nodes."""


def _construct_opencv_matrix(loader: yaml.SafeLoader, node: yaml.Node) -> np.ndarray:
    fields = loader.construct_mapping(node, deep=True)
    try:
        rows = int(fields["rows"])
        cols = int(fields["cols"])
        data = fields["data"]
    except KeyError as exc:
        raise ValueError(f"matrix node lacks field {exc.args[0]!r}") from None
    dtype = np.float64 if str(fields.get("dt", "f")) == "d" else np.float32
    values = np.asarray(data, dtype=dtype)
    if values.size != rows * cols:
        raise ValueError(f"matrix node holds {values.size} values, expected {rows * cols}")
    return values.reshape(rows, cols)


_SettingsLoader.add_constructor("tag:yaml.org,2002:opencv-matrix", _construct_opencv_matrix)


def parse_settings(text: str) -> dict[str, Any]:
    """Parse the text of a settings file into a flat mapping of keys to values."""
    lines = [line for line in text.splitlines() if not line.lstrip().startswith("%")]
    data = yaml.load("\n".join(lines), Loader=_SettingsLoader)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("settings file must hold a mapping of keys to values")
    return {str(key): value for key, value in data.items()}


def load_settings(path: Union[str, os.PathLike]) -> dict[str, Any]:
    """Read and parse a settings file; raises ``OSError`` when it cannot be opened."""
    with open(path, encoding="utf-8") as stream:
        return parse_settings(stream.read())


def _real(values: Mapping[str, Any], key: str) -> float:
    value = values.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"setting {key!r} is not a number: {value!r}") from None


def _integer(values: Mapping[str, Any], key: str) -> int:
    return int(round(_real(values, key)))


@dataclass(frozen=True)
class CameraSettings:
    """Pinhole calibration, distortion and sensor-dependent thresholds."""

    fx: float
    fy: float
    cx: float
    cy: float
    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0
    bf: float = 0.0
    fps: float = _DEFAULT_FPS
    rgb: bool = False
    th_depth: Optional[float] = None
    depth_map_factor: Optional[float] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], sensor: Sensor) -> "CameraSettings":
        """Build settings from parsed file values; missing numbers read as zero."""
        sensor = Sensor(sensor)
        fx = _real(values, "Camera.fx")
        bf = _real(values, "Camera.bf")
        fps = _real(values, "Camera.fps")
        if fps == 0:
            fps = _DEFAULT_FPS

        th_depth: Optional[float] = None
        if sensor in (Sensor.STEREO, Sensor.RGBD):
            th_depth = bf * _real(values, "ThDepth") / fx if fx else float("inf")

        depth_factor: Optional[float] = None
        if sensor is Sensor.RGBD:
            raw = _real(values, "DepthMapFactor")
            depth_factor = 1.0 if abs(raw) < _DEPTH_FACTOR_EPS else 1.0 / raw

        return cls(
            fx=fx,
            fy=_real(values, "Camera.fy"),
            cx=_real(values, "Camera.cx"),
            cy=_real(values, "Camera.cy"),
            k1=_real(values, "Camera.k1"),
            k2=_real(values, "Camera.k2"),
            p1=_real(values, "Camera.p1"),
            p2=_real(values, "Camera.p2"),
            k3=_real(values, "Camera.k3"),
            bf=bf,
            fps=fps,
            rgb=bool(_integer(values, "Camera.RGB")),
            th_depth=th_depth,
            depth_map_factor=depth_factor,
        )

    @property
    def camera_matrix(self) -> np.ndarray:
        """3x3 intrinsic matrix."""
        k = np.eye(3, dtype=np.float32)
        k[0, 0] = self.fx
        k[1, 1] = self.fy
        k[0, 2] = self.cx
        k[1, 2] = self.cy
        return k

    @property
    def dist_coef(self) -> np.ndarray:
        """Distortion coefficients k1, k2, p1, p2 and, when non-zero, k3."""
        coefs = [self.k1, self.k2, self.p1, self.p2]
        if self.k3 != 0:
            coefs.append(self.k3)
        return np.array(coefs, dtype=np.float32)

    @property
    def min_frames(self) -> int:
        """Minimum frames between keyframe insertions."""
        return 0

    @property
    def max_frames(self) -> int:
        """Maximum frames between keyframes and the relocalisation window."""
        return int(self.fps)

    @property
    def color_order(self) -> str:
        return "RGB" if self.rgb else "BGR"


@dataclass(frozen=True)
class OrbSettings:
    """Parameters of the ORB feature extractor."""

    n_features: int
    scale_factor: float
    n_levels: int
    ini_th_fast: int
    min_th_fast: int

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "OrbSettings":
        """Build extractor settings from parsed file values."""
        return cls(
            n_features=_integer(values, "ORBextractor.nFeatures"),
            scale_factor=_real(values, "ORBextractor.scaleFactor"),
            n_levels=_integer(values, "ORBextractor.nLevels"),
            ini_th_fast=_integer(values, "ORBextractor.iniThFAST"),
            min_th_fast=_integer(values, "ORBextractor.minThFAST"),
        )

    @property
    def initializer_features(self) -> int:
        """Feature count used while initialising a monocular map."""
        return 2 * self.n_features