"""Protocols of the collision backend consumed by validity checking."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class CollisionScene(Protocol):
    """Collision scene answering point-wise validity queries.

    Like the kinematics provider, the scene holds the last loaded configuration,
    so it is updated and queried under the problem lock.
    """

    def update(self, q: np.ndarray) -> None:
        """Load the configuration into the scene."""
        ...

    def is_state_valid(self, self_collision: bool, margin: float) -> bool:
        """Whether the loaded configuration is collision-free and farther than margin from obstacles."""
        ...


@runtime_checkable
class SupportsDistance(Protocol):
    """Collision scene which also reports distance to the nearest collision."""

    def min_distance(self, self_collision: bool) -> float:
        """Smallest signed distance over checked pairs, negative if penetrating."""
        ...
