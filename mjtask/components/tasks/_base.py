from __future__ import annotations

import numpy as np

from mjtask.components.task_maps import TaskMap
from mjtask.exceptions import SizeMismatch
from mjtask.typing import ArrayOrFloat


class TaskDefinition:
    """A task map together with its target, weights and activation schedule.

    The trajectory is discretized into ``T`` steps. The definition is active at step ``t``
    iff a weight vector was registered for that step. Weight vectors are stored by
    reference, so one vector may be shared by many steps and updated in place.

    :param name: The name of the task definition.
    :param task_map: The underlying task map.
    """

    _name: str
    _task_map: TaskMap | None
    _y_star: np.ndarray | None
    _rho: list[np.ndarray | None]

    def __init__(self, name: str, task_map: TaskMap | None = None):
        self._name = name
        self._task_map = None
        self._y_star = None
        self._rho = [None]
        if task_map is not None:
            self.set_task_map(task_map)

    @property
    def name(self) -> str:
        return self._name

    @property
    def task_map(self) -> TaskMap:
        """
        Get the underlying task map.

        :raises ValueError: If the task map is not set.
        """
        if self._task_map is None:
            raise ValueError(f"task map of {self.name} is not set")
        return self._task_map

    def set_task_map(self, task_map: TaskMap):
        """
        Bind the underlying task map.

        The target is reset to zeros if its size does not match the new task map.

        :param task_map: The task map.
        """
        if self._y_star is not None and len(self._y_star) != task_map.task_space_dim:
            self._y_star = None
        self._task_map = task_map

    @property
    def dim(self) -> int:
        return self.task_map.task_space_dim

    @property
    def y_star(self) -> np.ndarray:
        """
        Get the target of the task map feature. Defaults to zero vector.

        :return: The target vector.
        """
        if self._y_star is None:
            self._y_star = np.zeros(self.dim)
        return self._y_star

    @y_star.setter
    def y_star(self, value: ArrayOrFloat):
        self.update_y_star(value)

    def update_y_star(self, y_star: ArrayOrFloat):
        """
        Update the target of the task map feature.

        :param y_star: The new target, scalar is broadcasted.
        :raises SizeMismatch: If the target has wrong size.
        """
        y_star_np = np.asarray(y_star, dtype=float)
        if y_star_np.ndim == 0:
            y_star_np = np.ones(self.dim) * y_star_np
        elif y_star_np.shape != (self.dim,):
            raise SizeMismatch(f"target of {self.name}", (self.dim,), y_star_np.shape)
        self._y_star = y_star_np

    @property
    def T(self) -> int:
        return len(self._rho)

    def set_time_steps(self, T: int):
        """
        Reset weight storage for T steps. All steps become inactive.

        :param T: The number of steps.
        :raises ValueError: If T is not positive.
        """
        if T < 1:
            raise ValueError(f"number of time steps has to be positive, got {T}")
        self._rho = [None] * T

    def register_rho(self, rho: np.ndarray, t: int):
        """
        Bind the weight vector to the time step, making the definition active there.

        The vector is stored by reference. It has either a single entry, broadcasted over the
        feature, or one entry per feature dimension.

        :param rho: The weight vector.
        :param t: The time step.
        :raises ValueError: If the step is out of range, or rho has wrong dimension.
        """
        if not 0 <= t < self.T:
            raise ValueError(f"time step {t} is out of range [0, {self.T})")
        if not isinstance(rho, np.ndarray) or rho.ndim != 1:
            raise ValueError("rho has to be 1D numpy array")
        if self._task_map is not None and len(rho) not in (1, self.dim):
            raise ValueError(f"invalid rho size: {len(rho)}, expected 1 or {self.dim}")
        self._rho[t] = rho

    def unregister_rho(self, t: int):
        if not 0 <= t < self.T:
            raise ValueError(f"time step {t} is out of range [0, {self.T})")
        self._rho[t] = None

    def rho(self, t: int) -> np.ndarray | None:
        """
        Get the weight vector registered for the step.

        :param t: The time step.
        :return: The weight vector, or None if the definition is inactive at t.
        :raises ValueError: If the step is out of range.
        """
        if not 0 <= t < self.T:
            raise ValueError(f"time step {t} is out of range [0, {self.T})")
        return self._rho[t]

    def is_active(self, t: int) -> bool:
        return 0 <= t < self.T and self._rho[t] is not None

    @property
    def active_steps(self) -> tuple[int, ...]:
        return tuple(t for t, rho in enumerate(self._rho) if rho is not None)

    def matrix_rho(self, t: int) -> np.ndarray:
        """
        Get the weighting matrix :math:`diag(\\rho_t)`.

        :param t: The time step.
        :return: The (dim, dim) diagonal matrix, zero if inactive.
        """
        rho = self.rho(t)
        if rho is None:
            return np.zeros((self.dim, self.dim))
        return np.diag(np.broadcast_to(rho, (self.dim,)))
