from ._base import CollisionScene, SupportsDistance
from ._mujoco import MujocoCollisionScene

__all__ = ["CollisionScene", "MujocoCollisionScene", "SupportsDistance"]
