from __future__ import annotations

import abc
from collections.abc import Mapping
from typing import Any

import numpy as np

from mjtask.exceptions import ConfigurationError, SizeMismatch
from mjtask.kinematics import KinematicsProvider


class TaskMap(abc.ABC):
    r"""Base class for all task maps.

    A task map is a function from the robot configuration :math:`q \in R^N` into a
    fixed-size feature vector :math:`\phi(q) \in R^{m}`, together with its jacobian

    .. math::

        J(q) = \frac{\partial \phi}{\partial q} \in R^{m \times N}.

    Most maps read the quantities they need (frame positions, frame jacobians) from
    the kinematics provider they are bound to, which already holds the configuration
    passed to :py:meth:`update`.

    Subclasses implement :py:meth:`compute_phi` and :py:meth:`compute_jacobian`, and set
    ``_dim`` once the dimension is known.

    :param name: The name of the task map.
    """

    _name: str
    _dim: int
    _kinematics: KinematicsProvider | None

    def __init__(self, name: str):
        self._name = name
        self._dim = -1
        self._kinematics = None

    @classmethod
    @abc.abstractmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> TaskMap:  # pragma: no cover
        """
        Construct the task map from a loosely typed configuration.

        :param name: The name of the task map.
        :param config: The configuration mapping.
        :raises ConfigurationError: configuration is malformed.
        :return: The constructed task map.
        """
        pass

    @property
    def name(self) -> str:
        """
        Get the name of the task map.

        :return: The task map name.
        """
        return self._name

    @property
    def task_space_dim(self) -> int:
        """
        Get the dimension of the feature vector.

        :return: The task space dimension.
        :raises ValueError: If the dimension is not set.
        """
        if self._dim == -1:
            raise ValueError("task map dimension is not defined yet. Bind the task map to kinematics first.")
        return self._dim

    @property
    def dim(self) -> int:
        return self.task_space_dim

    @property
    def kinematics(self) -> KinematicsProvider:
        """
        Get the kinematics provider the task map is bound to.

        :raises ValueError: If the task map is not bound.
        """
        if self._kinematics is None:
            raise ValueError("task map is not bound to kinematics")
        return self._kinematics

    @property
    def nq(self) -> int:
        return self.kinematics.nq

    def bind(self, kinematics: KinematicsProvider):
        """
        Bind the task map to the kinematics provider.

        Subclasses resolve frame names here.

        :param kinematics: The kinematics provider.
        :raises ConfigurationError: If some frame is not present in the provider.
        """
        self._kinematics = kinematics

    @abc.abstractmethod
    def compute_phi(self, q: np.ndarray) -> np.ndarray:  # pragma: no cover
        """
        Compute the feature vector :math:`\\phi(q)`.

        :param q: The configuration, already loaded into the kinematics provider.
        :return: The feature vector of shape (task_space_dim,).
        """
        pass

    @abc.abstractmethod
    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:  # pragma: no cover
        """
        Compute the jacobian :math:`J(q)`.

        :param q: The configuration, already loaded into the kinematics provider.
        :return: The jacobian of shape (task_space_dim, N).
        """
        pass

    def update(self, q: np.ndarray, phi: np.ndarray, jacobian: np.ndarray | None = None):
        """
        Write the feature vector, and optionally its jacobian, into caller-owned buffers.

        The buffers are never resized.

        :param q: The configuration, already loaded into the kinematics provider.
        :param phi: The feature buffer of shape (task_space_dim,).
        :param jacobian: The jacobian buffer of shape (task_space_dim, N).
        :raises SizeMismatch: If the buffers have wrong shapes.
        """
        if phi.shape != (self.task_space_dim,):
            raise SizeMismatch(f"phi of {self.name}", (self.task_space_dim,), phi.shape)
        if jacobian is not None and jacobian.shape != (self.task_space_dim, self.nq):
            raise SizeMismatch(f"jacobian of {self.name}", (self.task_space_dim, self.nq), jacobian.shape)

        phi[:] = self.compute_phi(q)
        if jacobian is not None:
            jacobian[:] = self.compute_jacobian(q)


class FrameTaskMap(TaskMap):
    """Base class of task maps defined over a list of frames.

    :param name: The name of the task map.
    :param frames: Names of the frames.
    """

    _frames: tuple[str, ...]
    _frame_ids: tuple[int, ...]

    def __init__(self, name: str, frames: tuple[str, ...]):
        super().__init__(name)
        if len(frames) == 0:
            raise ConfigurationError(f"[{self.__class__.__name__}] at least one frame has to be specified")
        self._frames = tuple(frames)
        self._frame_ids = ()

    @property
    def frames(self) -> tuple[str, ...]:
        return self._frames

    @property
    def n_frames(self) -> int:
        return len(self._frames)

    @property
    def frame_ids(self) -> tuple[int, ...]:
        """
        Get the provider indices of the frames.

        :raises ValueError: If the task map is not bound.
        """
        if len(self._frame_ids) == 0:
            raise ValueError("frame ids are not available until the task map is bound to kinematics.")
        return self._frame_ids

    def bind(self, kinematics: KinematicsProvider):
        self._frame_ids = tuple(kinematics.frame_id(frame) for frame in self._frames)
        super().bind(kinematics)

    def frame_positions(self) -> np.ndarray:
        """Positions of all frames stacked into a vector of size 3n."""
        return np.concatenate([self.kinematics.position(frame_id) for frame_id in self.frame_ids])

    def frame_position_jacobians(self) -> np.ndarray:
        """Position rows of the frame jacobians stacked into a (3n, N) matrix."""
        return np.vstack([self.kinematics.jacobian(frame_id)[:3] for frame_id in self.frame_ids])
