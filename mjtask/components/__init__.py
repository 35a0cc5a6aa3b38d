from .task_maps import TaskMap
from .tasks import TaskDefinition

__all__ = ["TaskMap", "TaskDefinition"]
