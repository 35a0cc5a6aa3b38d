import unittest

import numpy as np

from mjtask.components.task_maps import JointLimit
from mjtask.components.tasks import TaskSqrError
from mjtask.exceptions import ConfigurationError, SizeMismatch
from mjtask.initializers import ProblemInitializer, SamplingProblemInitializer
from mjtask.problems import SamplingProblem


class JointSpaceKinematics:
    def __init__(self, nq: int):
        self._nq = nq
        self.q = np.zeros(nq)

    @property
    def nq(self) -> int:
        return self._nq

    def frame_id(self, name: str) -> int:
        raise ConfigurationError(f"frame {name} is not found")

    def update(self, q):
        self.q = np.array(q, dtype=float)


class TestSamplingProblem(unittest.TestCase):
    def setUp(self):
        self.problem = SamplingProblem(JointSpaceKinematics(3))

    def test_bounds_not_set(self):
        self.assertEqual(self.problem.space_dim, 3)
        self.assertIsNone(self.problem.goal_state)
        with self.assertRaises(ValueError):
            _ = self.problem.bounds

    def test_instantiate(self):
        self.problem.instantiate({"LowerBound": [-1, -2, -3], "UpperBound": [1, 2, 3], "Goal": [0.5, 0.5, 0.5]})
        lower, upper = self.problem.bounds
        np.testing.assert_array_equal(lower, [-1, -2, -3])
        np.testing.assert_array_equal(upper, [1, 2, 3])
        np.testing.assert_array_equal(self.problem.goal_state, [0.5, 0.5, 0.5])

        # returned bounds are copies
        lower[0] = 10.0
        np.testing.assert_array_equal(self.problem.bounds[0], [-1, -2, -3])

    def test_instantiate_static_configuration(self):
        """Testing mapping configures both the bounds and the static problem fields"""
        self.problem.instantiate({"LowerBound": [0, 0, 0], "UpperBound": [1, 1, 1], "T": 20, "Tolerance": 1e-4})
        self.assertEqual(self.problem.T, 20)
        self.assertAlmostEqual(self.problem.tau, 1e-4)

        self.problem.instantiate(
            SamplingProblemInitializer(np.zeros(3), np.ones(3)), ProblemInitializer(W=np.array([1.0, 2.0, 3.0]))
        )
        self.assertEqual(self.problem.T, 1)
        np.testing.assert_array_equal(self.problem.W, np.diag([1.0, 2.0, 3.0]))

    def test_invalid_bounds(self):
        with self.assertRaises(ConfigurationError):
            self.problem.instantiate({"LowerBound": [-1, -1], "UpperBound": [1, 1]})
        with self.assertRaises(ConfigurationError):
            self.problem.instantiate({"LowerBound": [1, 1, 1], "UpperBound": [0, 0, 0]})
        with self.assertRaises(ConfigurationError):
            self.problem.instantiate({"UpperBound": [1, 1, 1]})
        with self.assertRaises(ConfigurationError):
            self.problem.instantiate({"LowerBound": [0, 0, 0], "UpperBound": [1, 1, 1], "Goal": [0, 0]})

    def test_within_bounds(self):
        self.problem.instantiate(SamplingProblemInitializer(np.zeros(3), np.ones(3)))
        self.assertTrue(self.problem.is_within_bounds(np.array([0.0, 0.5, 1.0])))
        self.assertFalse(self.problem.is_within_bounds(np.array([0.0, 0.5, 1.1])))

    def test_goal_state(self):
        self.problem.goal_state = [1.0, 2.0, 3.0]
        np.testing.assert_array_equal(self.problem.goal_state, [1.0, 2.0, 3.0])
        with self.assertRaises(SizeMismatch):
            self.problem.goal_state = [1.0]
        self.problem.goal_state = None
        self.assertIsNone(self.problem.goal_state)

    def test_clear_restores_goal(self):
        """Testing clear restores the goal captured on instantiation"""
        self.problem.instantiate({"LowerBound": [-1, -1, -1], "UpperBound": [1, 1, 1], "Goal": [0, 0, 1]})
        self.problem.goal_state = [0.2, 0.2, 0.2]
        self.problem.clear()
        np.testing.assert_array_equal(self.problem.goal_state, [0, 0, 1])
        self.problem.clear(keep_originals=False)
        self.assertIsNone(self.problem.goal_state)

    def test_task_definitions(self):
        """Testing sampling problem evaluates task maps like the base problem"""
        limits = JointLimit("limits", -np.ones(3), np.ones(3))
        problem = SamplingProblem(
            JointSpaceKinematics(3), task_maps=[limits], task_definitions=[TaskSqrError("limits", limits)]
        )
        problem.update(np.array([2.0, 0.0, 0.0]))
        self.assertEqual(problem.phi("limits")[0], 1.0)
