"""Collision scene backed by the MuJoCo engine."""

from __future__ import annotations

from collections.abc import Sequence

import mujoco as mj
import numpy as np

from mjtask.configuration import body_pair_allowed, geom_pair_allowed, sorted_pair
from mjtask.exceptions import ConfigurationError, SizeMismatch
from mjtask.typing import CollisionBody, CollisionPair


class MujocoCollisionScene:
    """Collision scene of a MuJoCo model.

    Geoms attached to bodies welded to the world are treated as the environment,
    all other geoms belong to the robot. Two pair lists are built once:

    - environment pairs: every robot geom against every environment geom,
    - self-collision pairs: robot geoms of bodies which are neither welded together nor
      in parent-child relation.

    Both lists respect contype/conaffinity filtering. Distances are computed with
    ``mujoco.mj_geomDistance``.

    :param model: MuJoCo model.
    :param excluded_collisions: pairs of bodies excluded from checking.
    :param distmax: distances are saturated at this value.
    """

    def __init__(
        self,
        model: mj.MjModel,
        excluded_collisions: Sequence[tuple[CollisionBody, CollisionBody]] = (),
        distmax: float = 10.0,
    ):
        self._model = model
        self._data = mj.MjData(model)
        self._distmax = distmax
        self._fromto = np.zeros(6)

        excluded = {sorted_pair(self.__body2id(b1), self.__body2id(b2)) for b1, b2 in excluded_collisions}
        self.environment_pairs, self.self_collision_pairs = self._generate_collision_pairs(excluded)

    @property
    def model(self) -> mj.MjModel:
        return self._model

    def __body2id(self, body: CollisionBody) -> int:
        if isinstance(body, int):
            return body
        elif isinstance(body, str):
            body_id = mj.mj_name2id(self._model, mj.mjtObj.mjOBJ_BODY, body)
            if body_id == -1:
                raise ConfigurationError(f"body with name {body} is not found.")
            return body_id
        else:
            raise ConfigurationError(f"invalid body type: expected string or int, got {type(body)}")

    def _generate_collision_pairs(
        self, excluded: set[CollisionPair]
    ) -> tuple[list[CollisionPair], list[CollisionPair]]:
        model = self._model
        robot_geoms = [g for g in range(model.ngeom) if model.body_weldid[model.geom_bodyid[g]] != 0]
        static_geoms = [g for g in range(model.ngeom) if model.body_weldid[model.geom_bodyid[g]] == 0]

        environment_pairs: list[CollisionPair] = []
        for g1 in robot_geoms:
            for g2 in static_geoms:
                body_pair = sorted_pair(model.geom_bodyid[g1], model.geom_bodyid[g2])
                if body_pair not in excluded and geom_pair_allowed(model, g1, g2):
                    environment_pairs.append(sorted_pair(g1, g2))

        self_collision_pairs: list[CollisionPair] = []
        for i, g1 in enumerate(robot_geoms):
            for g2 in robot_geoms[i + 1 :]:
                b1, b2 = int(model.geom_bodyid[g1]), int(model.geom_bodyid[g2])
                if (
                    b1 == b2  # geoms of the same body never collide,
                    or sorted_pair(b1, b2) in excluded  # or body pair is excluded,
                    or not body_pair_allowed(model, b1, b2)  # or body pair is not valid for other reason
                    or not geom_pair_allowed(model, g1, g2)
                ):
                    continue
                self_collision_pairs.append(sorted_pair(g1, g2))

        return environment_pairs, self_collision_pairs

    def update(self, q: np.ndarray) -> None:
        q = np.asarray(q, dtype=float)
        if q.shape != (self._model.nq,):
            raise SizeMismatch("configuration", (self._model.nq,), q.shape)
        self._data.qpos[:] = q
        mj.mj_kinematics(self._model, self._data)

    def distances(self, self_collision: bool) -> np.ndarray:
        """
        Compute signed distances of all checked pairs for the loaded configuration.

        :param self_collision: whether self-collision pairs are included.
        :return: distances, environment pairs first.
        """
        pairs = self.environment_pairs + (self.self_collision_pairs if self_collision else [])
        return np.array(
            [mj.mj_geomDistance(self._model, self._data, g1, g2, self._distmax, self._fromto) for g1, g2 in pairs]
        )

    def min_distance(self, self_collision: bool) -> float:
        distances = self.distances(self_collision)
        return float(distances.min()) if len(distances) > 0 else float("inf")

    def is_state_valid(self, self_collision: bool, margin: float) -> bool:
        return self.min_distance(self_collision) > margin
