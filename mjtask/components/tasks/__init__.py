from ._base import TaskDefinition
from ._sqr_error import TaskSqrError

__all__ = ["TaskDefinition", "TaskSqrError"]
