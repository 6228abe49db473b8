[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vslamcore"
version = "0.1.0"
description = "Building blocks of a feature-based visual SLAM tracker: EPnP pose estimation with RANSAC, calibration settings and thread-safe control flags."
requires-python = ">=3.10"
keywords = [
    "slam",
    "visual-odometry",
    "pnp",
    "epnp",
    "ransac",
    "camera-pose",
    "computer-vision",
    "calibration",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vslamcore"]

[tool.hatch.build.targets.sdist]
include = [
    "vslamcore",
    "tests",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
