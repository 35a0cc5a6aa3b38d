from __future__ import annotations

from collections.abc import Mapping
from typing import Any, final

import numpy as np

from mjtask.components.task_maps._base import TaskMap
from mjtask.components.task_maps._registry import register_task_map
from mjtask.exceptions import ConfigurationError
from mjtask.kinematics import KinematicsProvider
from mjtask.typing import ArrayOrFloat


@register_task_map("JointLimit")
class JointLimit(TaskMap):
    r"""Joint limit margins.

    With the safety offset :math:`s = \sigma (q_{max} - q_{min})`:

    .. math::

        \phi(q) = \begin{bmatrix} q - (q_{max} - s) \\ (q_{min} + s) - q \end{bmatrix},
        \qquad J = \begin{bmatrix} I \\ -I \end{bmatrix}

    Same sign convention as :py:class:`EffBox`: an entry is violated iff it is positive.

    :param name: The name of the task map.
    :param lower: lower joint limits.
    :param upper: upper joint limits.
    :param safety: fraction of the joint range kept free at both ends, in [0, 0.5).
    """

    def __init__(self, name: str, lower: ArrayOrFloat, upper: ArrayOrFloat, safety: float = 0.0):
        super().__init__(name)
        lower_np, upper_np = np.asarray(lower, dtype=float), np.asarray(upper, dtype=float)
        if lower_np.ndim != 1 or lower_np.shape != upper_np.shape:
            raise ConfigurationError(f"[JointLimit] limits shapes are invalid: {lower_np.shape}, {upper_np.shape}")
        if np.any(lower_np > upper_np):
            raise ConfigurationError(
                f"[JointLimit] lower limit exceeds upper one for joint {int(np.argmax(lower_np > upper_np))}"
            )
        if not 0.0 <= safety < 0.5:
            raise ConfigurationError(f"[JointLimit] safety has to be in [0, 0.5), got {safety}")

        offset = safety * (upper_np - lower_np)
        self._lower = lower_np + offset
        self._upper = upper_np - offset
        self._dim = 2 * len(lower_np)

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> JointLimit:
        if "lower" not in config or "upper" not in config:
            raise ConfigurationError("JointLimit: both 'lower' and 'upper' have to be specified")
        return cls(name, config["lower"], config["upper"], float(config.get("safety", 0.0)))

    def bind(self, kinematics: KinematicsProvider):
        if kinematics.nq != len(self._lower):
            raise ConfigurationError(
                f"[JointLimit] {self.name} has limits for {len(self._lower)} joints, the kinematics has {kinematics.nq}"
            )
        super().bind(kinematics)

    @final
    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        return np.concatenate([q - self._upper, self._lower - q])

    @final
    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        eye = np.eye(len(self._lower))
        return np.vstack([eye, -eye])
