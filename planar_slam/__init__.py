"""Factor layer for incremental planar (2D) SLAM.

This package contains:
- estimators: Nodes, factors and the factor graph container
- slam: SE(2) geometry and the planar SLAM factors
- utils: Angle standardization and text formatting
"""

__version__ = "0.1.0"
