"""Task-space composition for robot motion optimization and sampling-based planning.

This package maps robot configurations into task-space features and their analytic
jacobians, composes them into weighted time-indexed objectives, and answers validity
queries of sampling planners. The reference kinematics backend is MuJoCo MJX.
"""

__version__ = "0.1.0"
