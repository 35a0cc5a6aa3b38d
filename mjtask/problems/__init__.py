from ._base import Problem
from ._sampling import SamplingProblem

__all__ = ["Problem", "SamplingProblem"]
