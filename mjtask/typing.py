"""Typings and small helpers which are utilized in mjtask"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeAlias

import jax.numpy as jnp
import numpy as np

ndarray: TypeAlias = np.ndarray | jnp.ndarray
ArrayOrFloat: TypeAlias = ndarray | float
TimeSpan: TypeAlias = tuple[float, float]
CollisionBody: TypeAlias = int | str  # body id, or body name
CollisionPair: TypeAlias = tuple[int, int]  # pair of geom ids

AXES: tuple[str, str, str] = ("X", "Y", "Z")


def clamp_time_span(span: Sequence[float]) -> TimeSpan:
    """Clamps a normalized time span into [0, 1].

    :param span: pair (t0, t1) of normalized times.
    :return: clamped pair.
    """
    t0, t1 = float(span[0]), float(span[1])
    return max(t0, 0.0), min(t1, 1.0)


def discretize_time_span(span: Sequence[float], n_steps: int) -> tuple[int, int]:
    """Converts normalized time span into the inclusive range of time steps.

    The span is clamped into [0, 1] first, and then both ends are mapped as
    :math:`\\lfloor (T - 1) t \\rfloor`. For example, for T=101 the span
    [0.2, 0.8] covers steps 20..80 inclusive.

    :param span: pair (t0, t1) of normalized times.
    :param n_steps: number of discretization steps T.
    :raises ValueError: number of steps is not positive.
    :return: first and last active steps, both inclusive.
    """
    if n_steps < 1:
        raise ValueError(f"number of time steps has to be positive, got {n_steps}")
    t0, t1 = clamp_time_span(span)
    # clamping also keeps the steps inside [0, T - 1] for inverted spans
    t0, t1 = min(t0, 1.0), max(t1, 0.0)
    return math.floor((n_steps - 1) * t0), math.floor((n_steps - 1) * t1)
