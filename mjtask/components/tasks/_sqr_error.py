"""Squared error task definition."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from mjtask.components.task_maps import TaskMap
from mjtask.components.tasks._base import TaskDefinition
from mjtask.typing import discretize_time_span


class TaskSqrError(TaskDefinition):
    r"""Weighted squared error of the task map feature.

    .. math::

        c_t(q) = (\phi(q) - y^*)^T diag(\rho_t) (\phi(q) - y^*)

    at every active step :math:`t`, and zero otherwise. Its gradient is

    .. math::

        \nabla c_t(q) = 2 J(q)^T diag(\rho_t) (\phi(q) - y^*).

    Two shared single-entry weights are owned by the definition: ``rho0`` (zero weight) and
    ``rho1`` (unit weight). Steps registered with them follow their in-place updates.

    :param name: The name of the task definition.
    :param task_map: The underlying task map.
    """

    rho0: np.ndarray
    rho1: np.ndarray

    def __init__(self, name: str, task_map: TaskMap | None = None):
        super().__init__(name, task_map)
        self.rho0 = np.zeros(1)
        self.rho1 = np.ones(1)

    def compute_error(self, phi: np.ndarray) -> np.ndarray:
        return phi - self.y_star

    def compute_cost(self, phi: np.ndarray, t: int) -> float:
        rho = self.rho(t)
        if rho is None:
            return 0.0
        error = self.compute_error(phi)
        return float(np.sum(rho * error * error))

    def compute_cost_jacobian(self, phi: np.ndarray, jacobian: np.ndarray, t: int) -> np.ndarray:
        rho = self.rho(t)
        if rho is None:
            return np.zeros(jacobian.shape[1])
        return 2 * jacobian.T @ (rho * self.compute_error(phi))

    def register_time_span(self, tspan: Sequence[float]) -> tuple[int, int]:
        """
        Activate the definition with unit weight on the normalized time span.

        :param tspan: normalized span (t0, t1), clamped into [0, 1].
        :return: the inclusive range of registered steps.
        """
        first, last = discretize_time_span(tspan, self.T)
        for t in range(first, last + 1):
            self.register_rho(self.rho1, t)
        return first, last
