"""Protocol of the kinematics backend consumed by task maps."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class KinematicsProvider(Protocol):
    """Forward kinematics backend.

    The provider is stateful: :py:meth:`update` loads a configuration, and every
    query afterwards refers to that configuration. It is shared by all task maps
    of a problem, so loading and reading must be serialized by the caller
    (see :py:attr:`mjtask.problems.Problem.lock`).
    """

    @property
    def nq(self) -> int:
        """Dimension of the configuration vector."""
        ...

    def frame_id(self, name: str) -> int:
        """Index of the named frame. Raises ConfigurationError if it does not exist."""
        ...

    def update(self, q: np.ndarray) -> None:
        """Load the configuration and recompute poses and jacobians."""
        ...

    def position(self, frame_id: int) -> np.ndarray:
        """World position of the frame, shape (3,)."""
        ...

    def rotation(self, frame_id: int) -> np.ndarray:
        """World rotation matrix of the frame, shape (3, 3)."""
        ...

    def jacobian(self, frame_id: int) -> np.ndarray:
        """World-aligned geometric jacobian of the frame, shape (6, nq). Linear rows go first."""
        ...
