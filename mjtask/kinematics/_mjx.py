"""Kinematics provider backed by MuJoCo MJX."""

from __future__ import annotations

import jax
import jax.numpy as jnp
import mujoco as mj
import mujoco.mjx as mjx
import numpy as np
from jaxlie import SE3

from mjtask.configuration import KinematicsSnapshot, compute_snapshot, get_transform_frame_to_world
from mjtask.exceptions import ConfigurationError, SizeMismatch


class MjxKinematics:
    """Forward kinematics of a MuJoCo model, evaluated with MJX.

    Frames are MuJoCo bodies. Poses and jacobians of all bodies are computed by a
    single jitted call on every :py:meth:`update`, and then cached on host as numpy
    arrays, so repeated per-frame queries are cheap.

    Only models with nq == nv are supported (hinge and slide joints), since the
    jacobians are reported with respect to the configuration vector.

    :param model: MuJoCo model, either host or MJX one.
    :param q0: initial configuration, defaults to the model's reference configuration.
    """

    _mj_model: mj.MjModel | None
    _model: mjx.Model
    _data: mjx.Data
    _snapshot: KinematicsSnapshot

    def __init__(self, model: mj.MjModel | mjx.Model, q0: np.ndarray | None = None):
        if isinstance(model, mj.MjModel):
            self._mj_model = model
            self._model = mjx.put_model(model)
        else:
            self._mj_model = None
            self._model = model

        if self._model.nq != self._model.nv:
            raise ConfigurationError(
                f"models with nq != nv are not supported: nq={self._model.nq}, nv={self._model.nv}"
            )

        self._data = mjx.make_data(self._model)
        self._forward = jax.jit(lambda q: compute_snapshot(self._model, self._data, q))
        self.update(q0 if q0 is not None else np.asarray(self._model.qpos0))

    @property
    def model(self) -> mjx.Model:
        return self._model

    @property
    def nq(self) -> int:
        return int(self._model.nq)

    @property
    def q(self) -> np.ndarray:
        """Configuration which was loaded last."""
        return self._snapshot.qpos

    def frame_id(self, name: str) -> int:
        frame_id = mjx.name2id(self._model, mj.mjtObj.mjOBJ_BODY, name)
        if frame_id == -1:
            raise ConfigurationError(f"body with name {name} is not found.")
        return frame_id

    def update(self, q: np.ndarray) -> None:
        q = np.asarray(q, dtype=float)
        if q.shape != (self.nq,):
            raise SizeMismatch("configuration", (self.nq,), q.shape)
        snapshot = self._forward(jnp.asarray(q))
        # Keeping a host copy: numpy indexing is much faster than dispatching jax ops per frame
        self._snapshot = jax.tree_util.tree_map(lambda x: np.asarray(x, dtype=float), snapshot)

    def position(self, frame_id: int) -> np.ndarray:
        return self._snapshot.xpos[frame_id]

    def rotation(self, frame_id: int) -> np.ndarray:
        return self._snapshot.xmat[frame_id]

    def jacobian(self, frame_id: int) -> np.ndarray:
        return self._snapshot.jacobians[frame_id]

    def pose(self, frame_id: int) -> SE3:
        """World pose of the frame.

        :param frame_id: index of the frame.
        :return: SE3 transformation from frame to world.
        """
        return get_transform_frame_to_world(self._snapshot, frame_id)
