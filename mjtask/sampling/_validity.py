"""Point-wise validity queries for sampling planners."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from mjtask.collision import CollisionScene, SupportsDistance
from mjtask.exceptions import ConfigurationError
from mjtask.problems import SamplingProblem
from mjtask.sampling._state_space import RealVectorStateSpace


@dataclass(frozen=True)
class ValidityCheckerParameters:
    """Safety parameters of validity queries.

    :param safety_margin: minimal allowed distance to obstacles.
    :param self_collision: whether self-collisions are checked.
    """

    safety_margin: float = 0.0
    self_collision: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ValidityCheckerParameters:
        """Parses ``{SafetyMargin, SelfCollisionCheck}``. Missing fields take the defaults."""
        return cls(
            safety_margin=float(config.get("SafetyMargin", 0.0)),
            self_collision=bool(config.get("SelfCollisionCheck", False)),
        )


class CheckerState(Enum):
    IDLE = 0
    EVALUATING = 1


class StateValidityChecker:
    """Answers whether planner states are collision-free.

    Every query converts the state into a configuration, loads it into the problem (and thus
    into the shared kinematics and collision scene), and asks the scene. The whole sequence runs
    under the problem lock, so concurrent queries from several planner threads are serialized.

    :param state_space: The state space translating planner states.
    :param problem: The sampling problem owning the collision scene.
    :param parameters: The safety parameters.
    :raises ConfigurationError: If the problem has no collision scene.
    """

    def __init__(
        self,
        state_space: RealVectorStateSpace,
        problem: SamplingProblem,
        parameters: ValidityCheckerParameters | None = None,
    ):
        if problem.scene is None:
            raise ConfigurationError("validity checking requires a problem with a collision scene")
        self._state_space = state_space
        self._problem = problem
        self._parameters = parameters if parameters is not None else ValidityCheckerParameters()
        self._state = CheckerState.IDLE

    @property
    def parameters(self) -> ValidityCheckerParameters:
        return self._parameters

    @property
    def state(self) -> CheckerState:
        return self._state

    @property
    def scene(self) -> CollisionScene:
        return self._problem.scene

    def is_valid(self, state: Any) -> bool:
        valid, _ = self.is_valid_with_distance(state)
        return valid

    def is_valid_with_distance(self, state: Any) -> tuple[bool, float]:
        """
        Check the state and report the distance to the nearest violation.

        If the scene reports distances, the distance is the clearance beyond the safety margin,
        strictly negative for invalid states even when the clearance equals the margin. Otherwise
        it is -1 for invalid and infinity for valid states.

        :param state: The planner state.
        :return: validity of the state, and the distance.
        """
        q = self._state_space.to_configuration(state)
        margin = self._parameters.safety_margin
        self_collision = self._parameters.self_collision

        with self._problem.lock:
            self._state = CheckerState.EVALUATING
            try:
                self._problem.update(q, compute_jacobian=False)
                scene = self.scene
                valid = scene.is_state_valid(self_collision, margin)
                if isinstance(scene, SupportsDistance):
                    distance = scene.min_distance(self_collision) - margin
                    if not valid:
                        distance = min(distance, float(np.nextafter(0.0, -1.0)))
                else:
                    distance = float("inf") if valid else -1.0
            finally:
                self._state = CheckerState.IDLE
        return valid, distance
