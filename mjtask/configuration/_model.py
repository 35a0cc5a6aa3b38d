import jax
import jax.numpy as jnp
import jax_dataclasses as jdc
from jaxlie import SE3, SO3
from mujoco import mjx
from mujoco.mjx._src import support


@jdc.pytree_dataclass
class KinematicsSnapshot:
    """Kinematic quantities of every body for one configuration.

    :param qpos: configuration the snapshot was computed for.
    :param xpos: world positions of the bodies, (nbody, 3).
    :param xmat: world rotation matrices of the bodies, (nbody, 3, 3).
    :param xquat: world orientations of the bodies as wxyz quaternions, (nbody, 4).
    :param jacobians: world-aligned geometric jacobians, (nbody, 6, nv). Linear rows go first.
    """

    qpos: jnp.ndarray
    xpos: jnp.ndarray
    xmat: jnp.ndarray
    xquat: jnp.ndarray
    jacobians: jnp.ndarray


def update(model: mjx.Model, data: mjx.Data) -> mjx.Data:
    """
    Update the MuJoCo data with new joint positions.

    Only the position-dependent stages are computed: global poses, and
    the subtree centers of mass and motion dofs required for jacobians.

    :param model: The MuJoCo model.
    :param data: MuJoCo data.
    :return: Updated MuJoCo data.
    """
    data = mjx.kinematics(model, data)
    data = mjx.com_pos(model, data)

    return data


def get_body_jacobian_world_aligned(model: mjx.Model, data: mjx.Data, body_id: jnp.ndarray) -> jnp.ndarray:
    """
    Compute the Jacobian of a body origin with respect to joint velocities.

    .. math::

        J = \\begin{bmatrix} J_v \\\\ J_\\omega \\end{bmatrix}

    where :math:`J_v` is the 3×nv position Jacobian and :math:`J_\\omega` is the 3×nv orientation
    Jacobian, both expressed in world-aligned coordinates.

    :param model: The MuJoCo model.
    :param data: The MuJoCo data, with kinematics and com positions computed.
    :param body_id: The ID of the body.
    :return: The geometric Jacobian matrix (6×nv).
    """
    jacp, jacr = support.jac(model, data, data.xpos[body_id], body_id)
    return jnp.vstack((jacp.T, jacr.T))


def compute_snapshot(model: mjx.Model, data: mjx.Data, q: jnp.ndarray) -> KinematicsSnapshot:
    """
    Run forward kinematics for q and collect poses and jacobians of all bodies.

    :param model: The MuJoCo model.
    :param data: MuJoCo data used as a template.
    :param q: The joint positions.
    :return: Snapshot of the kinematic quantities.
    """
    data = update(model, data.replace(qpos=q))
    jacobians = jax.vmap(lambda body_id: get_body_jacobian_world_aligned(model, data, body_id))(
        jnp.arange(model.nbody)
    )
    return KinematicsSnapshot(
        qpos=q,
        xpos=data.xpos,
        xmat=data.xmat.reshape(-1, 3, 3),
        xquat=data.xquat,
        jacobians=jacobians,
    )


def get_transform_frame_to_world(snapshot: KinematicsSnapshot, frame_id: int) -> SE3:
    """
    Get the transformation from frame to world coordinates.

    :param snapshot: The kinematics snapshot.
    :param frame_id: The ID of the frame.
    :return: The SE3 transformation.
    """
    return SE3.from_rotation_and_translation(
        SO3.from_quaternion_xyzw(snapshot.xquat[frame_id, [1, 2, 3, 0]]),
        snapshot.xpos[frame_id],
    )
