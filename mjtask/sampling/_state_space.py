"""Translation between planner states and configuration vectors."""

from __future__ import annotations

from typing import Any

import numpy as np

from mjtask.exceptions import SizeMismatch
from mjtask.problems import SamplingProblem


class RealVectorStateSpace:
    """Real vector state space over the configuration space of a sampling problem.

    Planner states are opaque: anything indexable by ``state[i]`` for ``i < dimension``, e.g. numpy
    arrays, lists, or state objects of planning libraries. They are converted to configuration
    vectors before reaching the problem.

    :param problem: The sampling problem, which provides the dimension and the bounds.
    """

    def __init__(self, problem: SamplingProblem):
        self._problem = problem

    @property
    def problem(self) -> SamplingProblem:
        return self._problem

    @property
    def dimension(self) -> int:
        return self._problem.space_dim

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        return self._problem.bounds

    def alloc_state(self) -> np.ndarray:
        return np.zeros(self.dimension)

    def to_configuration(self, state: Any) -> np.ndarray:
        """
        Convert the planner state into the configuration vector.

        :param state: The planner state.
        :raises SizeMismatch: If the state has known length different from the dimension.
        :return: A new configuration vector.
        """
        if hasattr(state, "__len__") and len(state) != self.dimension:
            raise SizeMismatch("state", (self.dimension,), (len(state),))
        return np.array([state[i] for i in range(self.dimension)], dtype=float)

    def from_configuration(self, q: np.ndarray, state: Any | None = None) -> Any:
        """
        Write the configuration vector into the planner state.

        :param q: The configuration.
        :param state: The state to be written, a new one is allocated if None.
        :return: The written state.
        """
        q = np.asarray(q, dtype=float)
        if q.shape != (self.dimension,):
            raise SizeMismatch("configuration", (self.dimension,), q.shape)
        if state is None:
            state = self.alloc_state()
        for i in range(self.dimension):
            state[i] = q[i]
        return state

    def sample_uniform(self, rng: np.random.Generator) -> np.ndarray:
        lower, upper = self.bounds
        return rng.uniform(lower, upper)

    def satisfies_bounds(self, state: Any) -> bool:
        return self._problem.is_within_bounds(self.to_configuration(state))

    def enforce_bounds(self, state: Any) -> Any:
        """
        Clip the state into the bounds in place.

        :param state: The planner state.
        :return: The same state.
        """
        lower, upper = self.bounds
        return self.from_configuration(np.clip(self.to_configuration(state), lower, upper), state)

    def distance(self, state1: Any, state2: Any) -> float:
        return float(np.linalg.norm(self.to_configuration(state1) - self.to_configuration(state2)))

    def interpolate(self, state_from: Any, state_to: Any, t: float) -> np.ndarray:
        q_from = self.to_configuration(state_from)
        return q_from + t * (self.to_configuration(state_to) - q_from)
