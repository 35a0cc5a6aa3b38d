"""Registry of task map classes, keyed by their external class names."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from mjtask.components.task_maps._base import TaskMap

TASK_MAP_REGISTRY: dict[str, type[TaskMap]] = {}

TaskMapType = TypeVar("TaskMapType", bound=type[TaskMap])


def register_task_map(key: str) -> Callable[[TaskMapType], TaskMapType]:
    """Class decorator which makes the task map constructible by its key.

    :param key: external class name, e.g. "EffBox".
    :raises ValueError: key is already registered for another class.
    """

    def decorator(cls: TaskMapType) -> TaskMapType:
        if key in TASK_MAP_REGISTRY and TASK_MAP_REGISTRY[key] is not cls:
            raise ValueError(f"task map '{key}' is already registered by {TASK_MAP_REGISTRY[key].__name__}")
        TASK_MAP_REGISTRY[key] = cls
        return cls

    return decorator


def create_task_map(key: str, name: str, config: Mapping[str, Any]) -> TaskMap:
    """Create a task map by its registered key.

    :param key: registered class name.
    :param name: name of the new task map.
    :param config: configuration forwarded to the class ``from_config``.
    :raises ValueError: key is not registered.
    """
    if key not in TASK_MAP_REGISTRY:
        raise ValueError(f"Unknown task map: {key}. Available: {sorted(TASK_MAP_REGISTRY)}")
    return TASK_MAP_REGISTRY[key].from_config(name, config)
