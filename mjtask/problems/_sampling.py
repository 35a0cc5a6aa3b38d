"""Problem consumed by sampling-based planners."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from mjtask.collision import CollisionScene
from mjtask.components.task_maps import TaskMap
from mjtask.components.tasks import TaskDefinition
from mjtask.exceptions import ConfigurationError, SizeMismatch
from mjtask.initializers import ProblemInitializer, SamplingProblemInitializer
from mjtask.kinematics import KinematicsProvider
from mjtask.problems._base import Problem


class SamplingProblem(Problem):
    """Problem with configuration space bounds and a goal configuration.

    The state-space adapter samples within the bounds, and the validity checker evaluates
    states through the problem's kinematics and collision scene under :py:attr:`lock`.

    :param kinematics: The kinematics provider.
    :param scene: The collision scene.
    :param task_maps: The initial task maps.
    :param task_definitions: The initial task definitions.
    :param known_maps: Mapping from re-composition class names to registry keys.
    """

    __lower: np.ndarray | None
    __upper: np.ndarray | None
    __goal_state: np.ndarray | None
    __original_goal_state: np.ndarray | None

    def __init__(
        self,
        kinematics: KinematicsProvider,
        scene: CollisionScene | None = None,
        task_maps: Sequence[TaskMap] = (),
        task_definitions: Sequence[TaskDefinition] = (),
        known_maps: Mapping[str, str] | None = None,
    ):
        self.__lower = None
        self.__upper = None
        self.__goal_state = None
        self.__original_goal_state = None
        super().__init__(kinematics, scene, task_maps, task_definitions, known_maps)

    def _capture_originals(self):
        with self.lock:
            super()._capture_originals()
            self.__original_goal_state = self.__goal_state

    def instantiate(
        self,
        init: SamplingProblemInitializer | Mapping[str, Any],
        problem_init: ProblemInitializer | None = None,
    ):
        """
        Apply the bounds and the goal configuration.

        A mapping configures the whole problem: ``{LowerBound, UpperBound, Goal}`` together with
        the optional ``{Tolerance, W, T}`` of :py:meth:`Problem.instantiate`.

        :param init: The initializer, or the configuration mapping.
        :param problem_init: The static problem configuration, used with the typed initializer only.
        :raises ConfigurationError: If the bounds are malformed or do not match the configuration size.
        """
        if not isinstance(init, SamplingProblemInitializer):
            problem_init = ProblemInitializer.from_config(init)
            init = SamplingProblemInitializer.from_config(init)
        if init.lower.shape != (self.nq,):
            raise ConfigurationError(f"bounds have to be specified for {self.nq} dimensions, got {len(init.lower)}")

        with self.lock:
            if problem_init is not None:
                super().instantiate(problem_init)
            self.__lower = init.lower.copy()
            self.__upper = init.upper.copy()
            self.__goal_state = init.goal.copy() if init.goal is not None else None
            self._capture_originals()

    @property
    def space_dim(self) -> int:
        return self.nq

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Get the configuration space bounds.

        :return: lower and upper bounds.
        :raises ValueError: If the bounds are not set.
        """
        if self.__lower is None or self.__upper is None:
            raise ValueError("bounds are not set. Instantiate the sampling problem first.")
        return self.__lower.copy(), self.__upper.copy()

    @property
    def goal_state(self) -> np.ndarray | None:
        return self.__goal_state.copy() if self.__goal_state is not None else None

    @goal_state.setter
    def goal_state(self, value: np.ndarray | None):
        if value is None:
            self.__goal_state = None
            return
        goal = np.asarray(value, dtype=float)
        if goal.shape != (self.nq,):
            raise SizeMismatch("goal configuration", (self.nq,), goal.shape)
        self.__goal_state = goal

    def is_within_bounds(self, q: np.ndarray) -> bool:
        lower, upper = self.bounds
        q = np.asarray(q, dtype=float)
        return bool(np.all(q >= lower) and np.all(q <= upper))

    def clear(self, keep_originals: bool = True):
        with self.lock:
            super().clear(keep_originals)
            self.__goal_state = self.__original_goal_state if keep_originals else None
