"""Point to plane distance task map."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, final

import numpy as np

from mjtask.components.task_maps._base import FrameTaskMap
from mjtask.components.task_maps._registry import register_task_map
from mjtask.exceptions import ConfigurationError
from mjtask.typing import ArrayOrFloat


@register_task_map("Point2Plane")
class Point2Plane(FrameTaskMap):
    r"""Signed distances of the frames to a plane.

    The plane passes through the point :math:`p_0` and has the unit normal :math:`n`:

    .. math::

        \phi_i(q) = n^T (e_i(q) - p_0), \qquad J_i(q) = n^T J_{e_i}(q)

    Distances are positive on the side the normal points to.

    :param name: The name of the task map.
    :param frames: Names of the frames.
    :param plane_point: A point on the plane, defaults to the origin.
    :param plane_normal: The normal of the plane, defaults to z axis. Normalized on construction.
    """

    _plane_point: np.ndarray
    _plane_normal: np.ndarray

    def __init__(
        self,
        name: str,
        frames: Sequence[str],
        plane_point: ArrayOrFloat = (0.0, 0.0, 0.0),
        plane_normal: ArrayOrFloat = (0.0, 0.0, 1.0),
    ):
        super().__init__(name, tuple(frames))
        self._plane_point = np.asarray(plane_point, dtype=float)
        normal = np.asarray(plane_normal, dtype=float)
        if self._plane_point.shape != (3,) or normal.shape != (3,):
            raise ConfigurationError(f"[Point2Plane] plane point and normal have to be 3D vectors in {name}")
        norm = np.linalg.norm(normal)
        if norm == 0:
            raise ConfigurationError(f"[Point2Plane] plane normal of {name} is zero")
        self._plane_normal = normal / norm
        self._dim = self.n_frames

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> Point2Plane:
        entries = config.get("EndEffector")
        if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
            raise ConfigurationError("Point2Plane: 'EndEffector' has to be a sequence of frames")
        frames = [entry.get("name") if isinstance(entry, Mapping) else entry for entry in entries]
        if not all(isinstance(frame, str) for frame in frames):
            raise ConfigurationError(f"Point2Plane: invalid frame entries {entries!r}")
        try:
            return cls(
                name,
                frames,
                plane_point=config.get("PlanePoint", (0.0, 0.0, 0.0)),
                plane_normal=config.get("PlaneNormal", (0.0, 0.0, 1.0)),
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Point2Plane: invalid plane of {name}: {e}") from e

    @property
    def plane_point(self) -> np.ndarray:
        return self._plane_point.copy()

    @property
    def plane_normal(self) -> np.ndarray:
        return self._plane_normal.copy()

    @final
    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        positions = self.frame_positions().reshape(-1, 3)
        return (positions - self._plane_point) @ self._plane_normal

    @final
    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        return np.vstack([self._plane_normal @ self.kinematics.jacobian(frame_id)[:3] for frame_id in self.frame_ids])
