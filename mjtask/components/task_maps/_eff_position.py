from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, final

import numpy as np

from mjtask.components.task_maps._base import FrameTaskMap
from mjtask.components.task_maps._registry import register_task_map
from mjtask.exceptions import ConfigurationError


@register_task_map("EffPosition")
class EffPosition(FrameTaskMap):
    """World positions of the end-effectors, stacked into a 3n vector.

    Config: ``{"EndEffector": ["frame1", {"name": "frame2"}, ...]}``.
    """

    def __init__(self, name: str, frames: Sequence[str]):
        super().__init__(name, tuple(frames))
        self._dim = 3 * self.n_frames

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> EffPosition:
        entries = config.get("EndEffector")
        if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
            raise ConfigurationError("EffPosition: 'EndEffector' has to be a sequence of frames")
        frames = []
        for i, entry in enumerate(entries):
            frame = entry.get("name") if isinstance(entry, Mapping) else entry
            if not isinstance(frame, str):
                raise ConfigurationError(f"EffPosition: invalid frame entry {i}: {entry!r}")
            frames.append(frame)
        return cls(name, frames)

    @final
    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        return self.frame_positions()

    @final
    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        return self.frame_position_jacobians()
