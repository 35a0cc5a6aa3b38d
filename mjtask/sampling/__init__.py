from ._state_space import RealVectorStateSpace
from ._validity import CheckerState, StateValidityChecker, ValidityCheckerParameters

__all__ = ["CheckerState", "RealVectorStateSpace", "StateValidityChecker", "ValidityCheckerParameters"]
