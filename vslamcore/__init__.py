"""Building blocks of a visual SLAM tracker: EPnP with RANSAC, settings and control flags."""

__version__ = "0.1.0"