from __future__ import annotations

import itertools
import threading
import warnings
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from mjtask.collision import CollisionScene
from mjtask.components.task_maps import TASK_MAP_REGISTRY, TaskMap, create_task_map
from mjtask.components.tasks import TaskDefinition, TaskSqrError
from mjtask.exceptions import ConfigurationError, SizeMismatch, UnknownTaskMapWarning
from mjtask.initializers import ProblemInitializer, parse_constraint_document
from mjtask.kinematics import KinematicsProvider
from mjtask.typing import ArrayOrFloat


class Problem:
    """A set of task maps and task definitions evaluated over a shared kinematics backend.

    The problem owns its task maps and definitions, the number of discretization steps ``T``,
    the diagonal configuration weight ``W`` and the convergence tolerance ``tau``. It is the
    single evaluation surface for solvers: :py:meth:`update` loads a configuration and refreshes
    every task map, and the cost getters aggregate active definitions.

    The kinematics provider and the collision scene keep the last loaded configuration, so
    every evaluation happens under :py:attr:`lock`. Callers that read the results, or query the
    scene, after :py:meth:`update` have to hold the lock across the whole sequence.

    The task maps and definitions passed to the constructor, or present when
    :py:meth:`instantiate` is called, form the *original* set restored by :py:meth:`clear`.

    :param kinematics: The kinematics provider.
    :param scene: The collision scene, updated together with the kinematics.
    :param task_maps: The initial task maps.
    :param task_definitions: The initial task definitions.
    :param known_maps: Mapping from re-composition class names to registry keys.
        Defaults to every registered task map under its own key.
    """

    __kinematics: KinematicsProvider
    __scene: CollisionScene | None
    __task_maps: dict[str, TaskMap]
    __task_definitions: dict[str, TaskDefinition]
    __original_task_maps: dict[str, TaskMap]
    __original_task_definitions: dict[str, TaskDefinition]
    __phi: dict[str, np.ndarray]
    __jacobian: dict[str, np.ndarray]
    __T: int
    __W: np.ndarray
    __tau: float

    def __init__(
        self,
        kinematics: KinematicsProvider,
        scene: CollisionScene | None = None,
        task_maps: Sequence[TaskMap] = (),
        task_definitions: Sequence[TaskDefinition] = (),
        known_maps: Mapping[str, str] | None = None,
    ):
        self.__kinematics = kinematics
        self.__scene = scene
        self.__known_maps = dict(known_maps) if known_maps is not None else None
        self.__lock = threading.RLock()
        self.__dynamic_ids = itertools.count()

        self.__task_maps = {}
        self.__task_definitions = {}
        self.__phi = {}
        self.__jacobian = {}
        self.__q = np.zeros(kinematics.nq)

        self.__T = 1
        self.__W = np.eye(kinematics.nq)
        self.__tau = 1e-2

        for task_map in task_maps:
            self.add_task_map(task_map)
        for task_definition in task_definitions:
            self.add_task_definition(task_definition)
        self._capture_originals()

    def _capture_originals(self):
        with self.__lock:
            self.__original_task_maps = dict(self.__task_maps)
            self.__original_task_definitions = dict(self.__task_definitions)

    @property
    def kinematics(self) -> KinematicsProvider:
        return self.__kinematics

    @property
    def scene(self) -> CollisionScene | None:
        return self.__scene

    @property
    def lock(self) -> threading.RLock:
        """
        Get the lock serializing evaluations.

        It guards loading a configuration into the kinematics provider and the scene, and
        reading the results. The lock is re-entrant, so holders may call :py:meth:`update`.
        """
        return self.__lock

    @property
    def nq(self) -> int:
        return self.__kinematics.nq

    @property
    def q(self) -> np.ndarray:
        """Configuration which was loaded last."""
        return self.__q.copy()

    @property
    def known_maps(self) -> dict[str, str]:
        if self.__known_maps is None:
            return {key: key for key in TASK_MAP_REGISTRY}
        return dict(self.__known_maps)

    @property
    def T(self) -> int:
        return self.__T

    @property
    def W(self) -> np.ndarray:
        return self.__W.copy()

    @property
    def tau(self) -> float:
        return self.__tau

    @tau.setter
    def tau(self, value: float):
        self.__tau = float(value)

    def instantiate(self, init: ProblemInitializer | Mapping[str, Any]):
        """
        Apply the static configuration: tolerance, configuration weights, and number of steps.

        The number of steps is propagated to every task definition, which clears their
        registered weights. The current maps and definitions become the original set.

        :param init: The initializer, or the mapping ``{Tolerance, W, T}``.
        :raises ConfigurationError: If the configuration is malformed.
        """
        if not isinstance(init, ProblemInitializer):
            init = ProblemInitializer.from_config(init)

        W = init.W if len(init.W) > 0 else np.ones(self.nq)
        if W.shape != (self.nq,):
            raise ConfigurationError(f"W has to have one weight per configuration dimension: {self.nq} != {len(W)}")

        with self.__lock:
            self.__tau = init.tolerance
            self.__W = np.diag(W)
            self.__T = init.T
            for task_definition in self.__task_definitions.values():
                task_definition.set_time_steps(self.__T)
            self._capture_originals()

    # Components management

    def add_task_map(self, task_map: TaskMap):
        """
        Add the task map, binding it to the kinematics provider.

        :param task_map: The task map.
        :raises ValueError: If a task map with the same name already exists.
        """
        with self.__lock:
            if task_map.name in self.__task_maps:
                raise ValueError(f"the task map with name {task_map.name} already exists")
            task_map.bind(self.__kinematics)
            self.__task_maps[task_map.name] = task_map
            self.__allocate_buffers(task_map)

    def __allocate_buffers(self, task_map: TaskMap):
        if task_map.name not in self.__phi:
            self.__phi[task_map.name] = np.zeros(task_map.task_space_dim)
            self.__jacobian[task_map.name] = np.zeros((task_map.task_space_dim, self.nq))

    def remove_task_map(self, name: str):
        with self.__lock:
            if name not in self.__task_maps:
                return
            users = [d.name for d in self.__task_definitions.values() if d.task_map is self.__task_maps[name]]
            if len(users) > 0:
                raise ValueError(f"task map {name} is used by task definitions {users}")
            del self.__task_maps[name]
            del self.__phi[name]
            del self.__jacobian[name]

    def add_task_definition(self, task_definition: TaskDefinition):
        """
        Add the task definition.

        Its task map has to be added to the problem beforehand. If the definition has a different
        number of steps than the problem, it is reset to the problem's number of steps.

        :param task_definition: The task definition.
        :raises ValueError: If a definition with the same name already exists.
        :raises ConfigurationError: If the task map of the definition is not owned by the problem.
        """
        with self.__lock:
            if task_definition.name in self.__task_definitions:
                raise ValueError(f"the task definition with name {task_definition.name} already exists")
            task_map = task_definition.task_map
            if self.__task_maps.get(task_map.name) is not task_map:
                raise ConfigurationError(
                    f"task map {task_map.name} of {task_definition.name} has to be added to the problem first"
                )
            if task_definition.T != self.__T:
                task_definition.set_time_steps(self.__T)
            self.__task_definitions[task_definition.name] = task_definition

    def remove_task_definition(self, name: str):
        with self.__lock:
            self.__task_definitions.pop(name, None)

    def task_map(self, name: str) -> TaskMap:
        if name not in self.__task_maps:
            raise ValueError(f"task map {name} is not present in the problem")
        return self.__task_maps[name]

    def task_definition(self, name: str) -> TaskDefinition:
        if name not in self.__task_definitions:
            raise ValueError(f"task definition {name} is not present in the problem")
        return self.__task_definitions[name]

    @property
    def task_maps(self) -> dict[str, TaskMap]:
        return dict(self.__task_maps)

    @property
    def task_definitions(self) -> dict[str, TaskDefinition]:
        return dict(self.__task_definitions)

    def clear(self, keep_originals: bool = True):
        """
        Remove task definitions added after the original set was captured.

        :param keep_originals: If True, the original maps and definitions are restored.
            Otherwise every definition is removed, and only the original maps are kept.
        """
        with self.__lock:
            self.__task_definitions = dict(self.__original_task_definitions) if keep_originals else {}
            self.__task_maps = dict(self.__original_task_maps)
            for name in set(self.__phi) - set(self.__task_maps):
                del self.__phi[name]
                del self.__jacobian[name]
            for task_map in self.__task_maps.values():
                self.__allocate_buffers(task_map)

    def reinitialise(self, document: str | bytes | Sequence[Any], keep_originals: bool = True):
        """
        Re-compose the problem from constraint specifications.

        Every entry ``{"class": str, "tspan": [t0, t1], ...}`` of a known class creates a new task map
        (remaining entry fields are its configuration) wrapped into :py:class:`TaskSqrError` with zero
        target, active with unit weight on the time span. Entries of unknown classes are skipped with
        :py:class:`UnknownTaskMapWarning`.

        The whole document is parsed and built before the problem is touched: on any error the problem
        stays as it was. Otherwise it is cleared with :py:meth:`clear` and the new components are added.

        :param document: Sequence of constraint entries, or its JSON text.
        :param keep_originals: Forwarded to :py:meth:`clear`.
        :raises ConfigurationError: If the document is not a sequence, or some entry is malformed.
            The message names the index of the offending entry.
        """
        records = parse_constraint_document(document)
        known_maps = self.known_maps

        with self.__lock:
            new_components: list[tuple[TaskMap, TaskSqrError]] = []
            taken_names = set(self.__task_maps) | set(self.__task_definitions)
            for i, record in enumerate(records):
                if record.class_name not in known_maps:
                    warnings.warn(
                        f"[Problem] ignoring unknown constraint '{record.class_name}'",
                        UnknownTaskMapWarning,
                        stacklevel=2,
                    )
                    continue

                name = f"{record.class_name}{next(self.__dynamic_ids)}"
                while name in taken_names:
                    name = f"{record.class_name}{next(self.__dynamic_ids)}"
                taken_names.add(name)

                try:
                    task_map = create_task_map(known_maps[record.class_name], name, record.config)
                    task_map.bind(self.__kinematics)
                except (TypeError, ValueError) as e:
                    raise ConfigurationError(f"constraint {i} ({record.class_name}): {e}") from e

                # TODO: zero target is a placeholder until goals can be passed within the entry
                task = TaskSqrError(name, task_map)
                task.set_time_steps(self.__T)
                task.register_time_span(record.tspan)
                new_components.append((task_map, task))

            self.clear(keep_originals)
            for task_map, task in new_components:
                self.add_task_map(task_map)
                self.add_task_definition(task)

    # Evaluation

    def update(self, q: np.ndarray, compute_jacobian: bool = True):
        """
        Load the configuration and refresh the features of every task map.

        :param q: The configuration.
        :param compute_jacobian: Whether the jacobians are refreshed as well.
        :raises SizeMismatch: If the configuration has wrong size.
        """
        q = np.asarray(q, dtype=float)
        if q.shape != (self.nq,):
            raise SizeMismatch("configuration", (self.nq,), q.shape)

        with self.__lock:
            self.__kinematics.update(q)
            if self.__scene is not None:
                self.__scene.update(q)
            for name, task_map in self.__task_maps.items():
                task_map.update(q, self.__phi[name], self.__jacobian[name] if compute_jacobian else None)
            self.__q = q.copy()

    def phi(self, name: str) -> np.ndarray:
        """
        Get the feature of the task map computed by the last :py:meth:`update`.

        :param name: The name of the task map.
        :return: The feature buffer, overwritten by the next update.
        """
        if name not in self.__phi:
            raise ValueError(f"task map {name} is not present in the problem")
        return self.__phi[name]

    def jacobian(self, name: str) -> np.ndarray:
        """
        Get the jacobian of the task map computed by the last :py:meth:`update`.

        :param name: The name of the task map.
        :return: The jacobian buffer, overwritten by the next update.
        """
        if name not in self.__jacobian:
            raise ValueError(f"task map {name} is not present in the problem")
        return self.__jacobian[name]

    def set_goal(self, name: str, y_star: ArrayOrFloat):
        self.task_definition(name).y_star = y_star

    def set_rho(self, name: str, rho: ArrayOrFloat, t: int = 0):
        """
        Register the weight of the definition at the step.

        :param name: The name of the task definition.
        :param rho: Scalar weight or one weight per feature dimension.
        :param t: The time step.
        """
        self.task_definition(name).register_rho(np.atleast_1d(np.asarray(rho, dtype=float)), t)

    def get_cost(self, t: int = 0) -> float:
        """
        Get the sum of costs of the definitions active at the step.

        :param t: The time step.
        :return: The cost for the configuration loaded last.
        """
        with self.__lock:
            return sum(
                (
                    task.compute_cost(self.__phi[task.task_map.name], t)
                    for task in self.__task_definitions.values()
                    if isinstance(task, TaskSqrError) and task.is_active(t)
                ),
                0.0,
            )

    def get_cost_jacobian(self, t: int = 0) -> np.ndarray:
        """
        Get the gradient of :py:meth:`get_cost` with respect to the configuration.

        :param t: The time step.
        :return: The gradient of shape (N,).
        """
        with self.__lock:
            gradient = np.zeros(self.nq)
            for task in self.__task_definitions.values():
                if isinstance(task, TaskSqrError) and task.is_active(t):
                    name = task.task_map.name
                    gradient += task.compute_cost_jacobian(self.__phi[name], self.__jacobian[name], t)
            return gradient

    def get_configuration_cost(self, dq: np.ndarray) -> float:
        r"""
        Get the configuration space cost :math:`dq^T W dq`.

        :param dq: The configuration displacement.
        :return: The cost.
        """
        dq = np.asarray(dq, dtype=float)
        if dq.shape != (self.nq,):
            raise SizeMismatch("configuration displacement", (self.nq,), dq.shape)
        return float(dq @ self.__W @ dq)
