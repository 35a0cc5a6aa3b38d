"""End-effector box task map."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, final

import numpy as np

from mjtask.components.task_maps._base import FrameTaskMap
from mjtask.components.task_maps._registry import register_task_map
from mjtask.initializers import EffBoxInitializer, FrameWithBoxLimits


@register_task_map("EffBox")
class EffBox(FrameTaskMap):
    r"""Keeps end-effector positions inside axis-aligned boxes.

    For :math:`n` frames with positions :math:`e_i`, the feature has :math:`6n` entries:

    .. math::

        \phi(q) = \begin{bmatrix} e(q) - e_{upper} \\ e_{lower} - e(q) \end{bmatrix}

    where :math:`e = [e_1, \dots, e_n] \in R^{3n}`. Every entry is non-positive iff the frames are
    inside their boxes, so the consumers treat each entry as "violated iff positive".

    The jacobian is the stacked position jacobian :math:`J_e`, and :math:`-J_e` for the lower half.

    :param name: The name of the task map.
    :param end_effectors: frames together with their box limits.
    """

    _lower: np.ndarray
    _upper: np.ndarray

    def __init__(self, name: str, end_effectors: Sequence[FrameWithBoxLimits]):
        super().__init__(name, tuple(eff.name for eff in end_effectors))
        self._lower = np.concatenate([np.asarray(eff.lower, dtype=float) for eff in end_effectors])
        self._upper = np.concatenate([np.asarray(eff.upper, dtype=float) for eff in end_effectors])
        self._dim = 6 * self.n_frames

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> EffBox:
        return cls(name, EffBoxInitializer.from_config(config).end_effectors)

    @property
    def lower_limit(self) -> np.ndarray:
        """
        Get the lower limits of all frames, flattened into 3n vector.

        :return: The lower limits.
        """
        return self._lower.copy()

    @property
    def upper_limit(self) -> np.ndarray:
        """
        Get the upper limits of all frames, flattened into 3n vector.

        :return: The upper limits.
        """
        return self._upper.copy()

    @final
    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        e = self.frame_positions()
        return np.concatenate([e - self._upper, self._lower - e])

    @final
    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        jac = self.frame_position_jacobians()
        return np.vstack([jac, -jac])
