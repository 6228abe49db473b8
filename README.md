# vslamcore

Building blocks of a feature-based visual SLAM tracker, written in plain
Python on top of NumPy and PyYAML.

The package contains:

- `vslamcore.epnp`: the EPnP closed-form camera pose from 3D–2D
  correspondences, with Gauss–Newton refinement of the control-point
  coefficients, plus the helpers `qr_solve`, `mat_to_quat` and
  `relative_error`.
- `vslamcore.pnp_solver`: `PnPSolver`, a RANSAC loop over EPnP that refines
  the pose on the best inlier set, and the `PnPCorrespondence` record it
  takes as input.
- `vslamcore.ransac`: `ransac_iterations` (iteration budget for a given
  confidence and inlier ratio), `draw_min_set` (a minimal sample without
  replacement) and the `RansacResult` record.
- `vslamcore.settings`: reading camera and ORB extractor parameters from a
  YAML settings file (`Sensor`, `CameraSettings`, `OrbSettings`,
  `load_settings`, `parse_settings`).
- `vslamcore.viewer_control`: `ViewerSettings` and `ViewerControl`, the
  thread-safe stop/finish handshake of a viewer loop.
- `vslamcore.mode_control`: `ModeRequests` for localisation-mode and reset
  requests, `MapChangeMonitor`, and `check_sensor` with its
  `SensorMismatchError`.

## Requirements

Python 3.10 or newer, NumPy and PyYAML.

## Estimating a camera pose

```python
import numpy as np
from vslamcore.epnp import EPnP

solver = EPnP(fu=500.0, fv=500.0, uc=320.0, vc=240.0)
rotation, translation, error = solver.compute_pose(points_world, points_image)
```

`points_world` is an `(N, 3)` array of world points and `points_image` the
matching `(N, 2)` array of pixel coordinates. The returned pose maps world
points into the camera frame; `error` is the mean reprojection error in
pixels. `EPnP.reprojection_error` computes that error for any pose.

`mat_to_quat(rotation)` returns a quaternion with the vector part first and
the scalar last. `relative_error` compares an estimated pose with a known
one and returns the relative rotation and translation errors.

## RANSAC over many matches

For matches that contain outliers, use `PnPSolver`. Each
`PnPCorrespondence` carries the position of the match in the frame's full
match list (`index`), the world point, the image point and the squared
scale-level sigma of the keypoint (`sigma2`, default 1.0):

```python
import random
from vslamcore.pnp_solver import PnPCorrespondence, PnPSolver

solver = PnPSolver(correspondences, n_matches, fx, fy, cx, cy, random.Random(0))
solver.set_ransac_parameters(0.99, 10, 300, 4, 0.5, 5.991)
outcome = solver.find()
if outcome.found:
    pose = outcome.pose          # 4x4 float32 camera-from-world transform
    flags = outcome.inliers      # one bool per match, n_matches long
```

The defaults of `set_ransac_parameters` are probability 0.99, 8 minimum
inliers, 300 maximum iterations, a minimal set of 4, epsilon 0.4 and a
squared error threshold of 5.991 (scaled by each point's `sigma2`). The
minimum inlier count and epsilon are raised to fit the number of
correspondences.

`iterate(n_iterations)` runs a bounded batch of iterations and keeps its
state between calls, so several candidates can be tried in turn. The
returned `RansacResult` has `pose`, `inliers`, `n_inliers`, `no_more` (the
budget is spent, or there are too few correspondences) and `found`. A
`ValueError` is raised for a correspondence whose index lies outside
`0..n_matches-1`.

## Reading settings

```python
from vslamcore.settings import CameraSettings, OrbSettings, Sensor, load_settings

values = load_settings("camera.yaml")
camera = CameraSettings.from_mapping(values, Sensor.STEREO)
orb = OrbSettings.from_mapping(values)
```

Recognised keys are `Camera.fx`, `Camera.fy`, `Camera.cx`, `Camera.cy`,
`Camera.k1`, `Camera.k2`, `Camera.p1`, `Camera.p2`, `Camera.k3`,
`Camera.bf`, `Camera.fps`, `Camera.RGB`, `ThDepth`, `DepthMapFactor` and
`ORBextractor.nFeatures`, `.scaleFactor`, `.nLevels`, `.iniThFAST`,
`.minThFAST`. Missing numbers read as zero; a zero frame rate becomes 30.
`th_depth` is set for stereo and RGB-D (`bf * ThDepth / fx`),
`depth_map_factor` for RGB-D only (the inverse of `DepthMapFactor`, or 1
when that is near zero).

`CameraSettings` also offers `camera_matrix`, `dist_coef` (k3 included only
when non-zero), `min_frames`, `max_frames` and `color_order`;
`OrbSettings.initializer_features` is twice the feature count.

`parse_settings(text)` parses a string. Lines starting with `%` (such as a
`%YAML:1.0` header) are skipped, and `!!opencv-matrix` nodes become NumPy
arrays. `load_settings` raises `OSError` when the file cannot be opened;
non-numeric values raise `ValueError`.

## Control flags

`ViewerSettings.from_mapping(values)` reads `Camera.fps`, `Camera.width`,
`Camera.height` and `Viewer.ViewpointX/Y/Z/F`, falling back to 30 fps and
640×480. `ViewerControl` holds the stop and finish flags of a viewer loop:
`start`, `request_stop`, `stop`, `is_stopped`, `release`, `request_finish`,
`check_finish`, `set_finish`, `is_finished`. A loop that has not started
counts as stopped and finished.

`ModeRequests` collects `activate_localization`, `deactivate_localization`
and `request_reset` calls from other threads; `take()` returns the pending
flags and clears them. `MapChangeMonitor.changed(index)` reports whether a
map's change counter moved since the last query. `check_sensor(expected,
actual)` raises `SensorMismatchError` when the two `Sensor` values differ.

## What the package does not do

It does not extract features, match descriptors, build or optimise a map,
close loops, estimate similarity transforms between keyframes, decide on
keyframe insertion, or save trajectories. It has no viewer window and no
command-line program; the pieces above are meant to be used from your own
code.

## Running the tests

```
pip install -e .[test]
pytest
```