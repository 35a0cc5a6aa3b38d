"""Typed configuration records.

Task maps and problems are configured from loosely typed mappings (parsed JSON or
YAML, keyword dictionaries). Every mapping is converted into one of the frozen
records below by its ``from_config`` constructor, which validates the input and
fails early with :py:class:`mjtask.exceptions.ConfigurationError`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from mjtask.exceptions import ConfigurationError
from mjtask.typing import AXES, TimeSpan


def _require(config: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in config:
        raise ConfigurationError(f"{where}: missing required field '{key}'")
    return config[key]


def _as_vector(value: Any, where: str) -> np.ndarray:
    try:
        vector = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{where}: expected a vector of numbers, got {value!r}") from e
    if vector.ndim != 1:
        raise ConfigurationError(f"{where}: expected a vector, got array with shape {vector.shape}")
    return vector


def _as_pair(value: Any, where: str) -> tuple[float, float]:
    pair = _as_vector(value, where)
    if pair.shape != (2,):
        raise ConfigurationError(f"{where}: expected a pair of numbers, got {value!r}")
    return float(pair[0]), float(pair[1])


@dataclass(frozen=True)
class FrameWithBoxLimits:
    """End-effector frame with per-axis position limits.

    :param name: name of the frame.
    :param lower: lower limits along x, y, z.
    :param upper: upper limits along x, y, z.
    """

    name: str
    lower: tuple[float, float, float]
    upper: tuple[float, float, float]

    def __post_init__(self):
        if len(self.lower) != 3 or len(self.upper) != 3:
            raise ConfigurationError(f"end-effector {self.name}: limits have to be given along x, y and z")
        for axis, lo, hi in zip(AXES, self.lower, self.upper):
            if lo > hi:
                raise ConfigurationError(f"Specify {axis}Lim using lower then upper for end-effector {self.name}.")

    @classmethod
    def from_config(cls, config: Mapping[str, Any], index: int = 0) -> FrameWithBoxLimits:
        """Parses ``{name, XLim, YLim, ZLim}``.

        :param config: frame entry.
        :param index: index of the entry, used in error messages.
        :raises ConfigurationError: entry is malformed, or some lower limit exceeds the upper one.
        """
        where = f"end-effector {index}"
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"{where}: expected a mapping, got {type(config).__name__}")
        name = _require(config, "name", where)
        if not isinstance(name, str):
            raise ConfigurationError(f"{where}: frame name has to be a string, got {name!r}")

        lower, upper = [], []
        for axis in AXES:
            lo, hi = _as_pair(_require(config, f"{axis}Lim", where), f"{where} {axis}Lim")
            if lo > hi:
                raise ConfigurationError(f"Specify {axis}Lim using lower then upper for end-effector {index}.")
            lower.append(lo)
            upper.append(hi)
        return cls(name, tuple(lower), tuple(upper))


@dataclass(frozen=True)
class EffBoxInitializer:
    end_effectors: tuple[FrameWithBoxLimits, ...]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> EffBoxInitializer:
        entries = _require(config, "EndEffector", "EffBox")
        if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
            raise ConfigurationError("EffBox: 'EndEffector' has to be a sequence of frames")
        return cls(tuple(FrameWithBoxLimits.from_config(entry, i) for i, entry in enumerate(entries)))


@dataclass(frozen=True)
class ProblemInitializer:
    """Static problem configuration.

    :param tolerance: convergence tolerance tau.
    :param W: per-dimension configuration weights, the diagonal of W.
    :param T: number of discretization steps.
    """

    tolerance: float = 1e-2
    W: np.ndarray = field(default_factory=lambda: np.zeros(0))
    T: int = 1

    def __post_init__(self):
        if self.T < 1:
            raise ConfigurationError(f"number of time steps has to be positive, got {self.T}")
        if self.tolerance < 0:
            raise ConfigurationError(f"tolerance has to be non-negative, got {self.tolerance}")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ProblemInitializer:
        """Parses ``{Tolerance, W, T}``. Missing fields take the defaults."""
        n_steps = config.get("T", 1)
        if isinstance(n_steps, bool) or not isinstance(n_steps, (int, np.integer)):
            raise ConfigurationError(f"problem: T has to be an integer, got {n_steps!r}")
        return cls(
            tolerance=float(config.get("Tolerance", 1e-2)),
            W=_as_vector(config.get("W", []), "problem W"),
            T=int(n_steps),
        )


@dataclass(frozen=True)
class SamplingProblemInitializer:
    """Sampling problem configuration.

    :param lower: lower bound of the configuration space.
    :param upper: upper bound of the configuration space.
    :param goal: goal configuration, if any.
    """

    lower: np.ndarray
    upper: np.ndarray
    goal: np.ndarray | None = None

    def __post_init__(self):
        if self.lower.shape != self.upper.shape:
            raise ConfigurationError(f"bounds shapes differ: {self.lower.shape} != {self.upper.shape}")
        if np.any(self.lower > self.upper):
            idx = int(np.argmax(self.lower > self.upper))
            raise ConfigurationError(f"lower bound exceeds upper bound for dimension {idx}")
        if self.goal is not None and self.goal.shape != self.lower.shape:
            raise ConfigurationError(f"goal shape {self.goal.shape} differs from bounds shape {self.lower.shape}")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SamplingProblemInitializer:
        goal = config.get("Goal")
        return cls(
            lower=_as_vector(_require(config, "LowerBound", "sampling problem"), "sampling problem LowerBound"),
            upper=_as_vector(_require(config, "UpperBound", "sampling problem"), "sampling problem UpperBound"),
            goal=_as_vector(goal, "sampling problem Goal") if goal is not None else None,
        )


@dataclass(frozen=True)
class ConstraintRecord:
    """One entry of a re-composition document.

    :param class_name: registered name of the task map class.
    :param tspan: normalized time span in which the constraint is active.
    :param config: remaining fields of the entry, forwarded to the task map.
    """

    class_name: str
    tspan: TimeSpan = (0.0, 1.0)
    config: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, entry: Any, index: int = 0) -> ConstraintRecord:
        where = f"constraint {index}"
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"{where}: expected an object, got {type(entry).__name__}")
        class_name = _require(entry, "class", where)
        if not isinstance(class_name, str):
            raise ConfigurationError(f"{where}: 'class' has to be a string, got {class_name!r}")
        tspan = _as_pair(entry["tspan"], f"{where} tspan") if "tspan" in entry else (0.0, 1.0)
        config = {k: v for k, v in entry.items() if k not in ("class", "tspan")}
        return cls(class_name, tspan, config)


def parse_constraint_document(document: str | bytes | Sequence[Any]) -> list[ConstraintRecord]:
    """Parses a re-composition document into constraint records.

    :param document: sequence of ``{class, tspan, ...}`` objects, or its JSON text.
    :raises ConfigurationError: the document is not a sequence, or any entry is malformed.
    :return: parsed records, in document order.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"invalid JSON document: {e}") from e
    if isinstance(document, (str, bytes, Mapping)) or not isinstance(document, Sequence):
        raise ConfigurationError(f"invalid constraint document: expected an array, got {type(document).__name__}")
    return [ConstraintRecord.from_config(entry, i) for i, entry in enumerate(document)]
