from ._base import KinematicsProvider
from ._mjx import MjxKinematics

__all__ = ["KinematicsProvider", "MjxKinematics"]
