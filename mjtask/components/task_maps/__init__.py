from ._base import FrameTaskMap, TaskMap
from ._registry import TASK_MAP_REGISTRY, create_task_map, register_task_map
from ._eff_box import EffBox
from ._eff_position import EffPosition
from ._joint_limit import JointLimit
from ._point_to_plane import Point2Plane

__all__ = [
    "TaskMap",
    "FrameTaskMap",
    "TASK_MAP_REGISTRY",
    "create_task_map",
    "register_task_map",
    "EffBox",
    "EffPosition",
    "JointLimit",
    "Point2Plane",
]
