from ._collision import body_pair_allowed, geom_pair_allowed, sorted_pair
from ._model import (
    KinematicsSnapshot,
    compute_snapshot,
    get_body_jacobian_world_aligned,
    get_transform_frame_to_world,
    update,
)

__all__ = [
    "KinematicsSnapshot",
    "body_pair_allowed",
    "compute_snapshot",
    "geom_pair_allowed",
    "get_body_jacobian_world_aligned",
    "get_transform_frame_to_world",
    "sorted_pair",
    "update",
]
