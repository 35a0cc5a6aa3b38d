import mujoco as mj

from mjtask.typing import CollisionPair


def sorted_pair(x: int, y: int) -> CollisionPair:
    """
    Return a sorted pair of integers.

    :param x: The first integer.
    :param y: The second integer.
    :return: A tuple of the two integers, sorted in ascending order.
    """
    return (min(x, y), max(x, y))


def body_pair_allowed(model: mj.MjModel, body1_id: int, body2_id: int) -> bool:
    """
    Check whether two bodies may collide with each other.

    Bodies that are welded together, or whose welds are in parent-child relation,
    are excluded from collision checking, as MuJoCo does by default.

    :param model: The MuJoCo model.
    :param body1_id: ID of the first body.
    :param body2_id: ID of the second body.
    :return: True if the pair should be checked.
    """
    # body_weldid is the ID of the body's weld.
    body_weldid1 = model.body_weldid[body1_id]
    body_weldid2 = model.body_weldid[body2_id]

    # weld_parent_weldid is the weld ID of the parent of the body's weld.
    weld_parent_weldid1 = model.body_weldid[model.body_parentid[body_weldid1]]
    weld_parent_weldid2 = model.body_weldid[model.body_parentid[body_weldid2]]

    is_parent_child = body_weldid1 == weld_parent_weldid2 or body_weldid2 == weld_parent_weldid1
    is_welded = body_weldid1 == body_weldid2

    return not (is_parent_child or is_welded)


def geom_pair_allowed(model: mj.MjModel, geom1_id: int, geom2_id: int) -> bool:
    """
    Check contype/conaffinity compatibility of two geoms.

    :param model: The MuJoCo model.
    :param geom1_id: ID of the first geom.
    :param geom2_id: ID of the second geom.
    :return: True if the geoms are allowed to collide.
    """
    # ref: https://mujoco.readthedocs.io/en/stable/computation/index.html#selection
    return bool(
        model.geom_contype[geom1_id] & model.geom_conaffinity[geom2_id]
        or model.geom_contype[geom2_id] & model.geom_conaffinity[geom1_id]
    )
