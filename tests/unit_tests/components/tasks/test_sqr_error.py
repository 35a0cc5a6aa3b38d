import unittest
from collections.abc import Mapping
from typing import Any

import numpy as np

from mjtask.components.task_maps import TaskMap
from mjtask.components.tasks import TaskDefinition, TaskSqrError
from mjtask.exceptions import SizeMismatch


class QuadraticTaskMap(TaskMap):
    """phi(q) = [q0^2, q0 q1] over two dimensional configuration."""

    def __init__(self, name: str):
        super().__init__(name)
        self._dim = 2

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> "QuadraticTaskMap":
        return cls(name)

    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        return np.array([q[0] ** 2, q[0] * q[1]])

    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        return np.array([[2 * q[0], 0.0], [q[1], q[0]]])


class OffsetTaskMap(TaskMap):
    """phi(q) = [q0, q1, 1] over two dimensional configuration."""

    def __init__(self, name: str):
        super().__init__(name)
        self._dim = 3

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> "OffsetTaskMap":
        return cls(name)

    def compute_phi(self, q: np.ndarray) -> np.ndarray:
        return np.array([q[0], q[1], 1.0])

    def compute_jacobian(self, q: np.ndarray) -> np.ndarray:
        return np.vstack([np.eye(2), np.zeros((1, 2))])


class TestTaskDefinition(unittest.TestCase):
    def setUp(self):
        self.task_map = QuadraticTaskMap("quadratic")
        self.task = TaskDefinition("task", self.task_map)

    def test_task_map(self):
        self.assertIs(self.task.task_map, self.task_map)
        self.assertEqual(self.task.dim, 2)
        with self.assertRaises(ValueError):
            _ = TaskDefinition("unbound").task_map

    def test_y_star(self):
        """Testing target defaults to zero, scalars are broadcasted"""
        np.testing.assert_array_equal(self.task.y_star, np.zeros(2))
        self.task.y_star = 3.0
        np.testing.assert_array_equal(self.task.y_star, [3.0, 3.0])
        self.task.update_y_star([1.0, -1.0])
        np.testing.assert_array_equal(self.task.y_star, [1.0, -1.0])
        with self.assertRaises(SizeMismatch):
            self.task.y_star = np.zeros(3)

    def test_time_steps(self):
        """Testing resetting the number of steps clears the weights"""
        self.assertEqual(self.task.T, 1)
        self.task.set_time_steps(5)
        self.assertEqual(self.task.T, 5)
        self.assertEqual(self.task.active_steps, ())

        self.task.register_rho(np.ones(1), 3)
        self.assertEqual(self.task.active_steps, (3,))
        self.task.set_time_steps(5)
        self.assertEqual(self.task.active_steps, ())

        with self.assertRaises(ValueError):
            self.task.set_time_steps(0)

    def test_register_rho(self):
        self.task.set_time_steps(3)
        rho = np.array([1.0, 2.0])
        self.task.register_rho(rho, 1)
        self.assertTrue(self.task.is_active(1))
        self.assertFalse(self.task.is_active(0))
        self.assertFalse(self.task.is_active(3))
        np.testing.assert_array_equal(self.task.matrix_rho(1), np.diag([1.0, 2.0]))
        np.testing.assert_array_equal(self.task.matrix_rho(0), np.zeros((2, 2)))

        with self.assertRaises(ValueError):
            self.task.register_rho(rho, 3)
        with self.assertRaises(ValueError):
            self.task.register_rho(np.ones(3), 0)
        with self.assertRaises(ValueError):
            self.task.register_rho(np.ones((2, 1)), 0)

        self.task.unregister_rho(1)
        self.assertFalse(self.task.is_active(1))

    def test_swap_task_map(self):
        """Testing the target follows the dimension of a newly bound task map"""
        self.task.y_star = [1.0, 2.0]
        self.task.set_task_map(QuadraticTaskMap("other"))
        np.testing.assert_array_equal(self.task.y_star, [1.0, 2.0])

        self.task.set_task_map(OffsetTaskMap("offset"))
        self.assertEqual(self.task.dim, 3)
        np.testing.assert_array_equal(self.task.y_star, np.zeros(3))

    def test_rho_out_of_range(self):
        """Testing negative and too large steps are rejected instead of wrapping around"""
        self.task.set_time_steps(3)
        self.task.register_rho(np.ones(1), 2)
        for t in (-1, 3):
            with self.subTest(t=t):
                with self.assertRaises(ValueError):
                    self.task.rho(t)
                with self.assertRaises(ValueError):
                    self.task.matrix_rho(t)
                self.assertFalse(self.task.is_active(t))

    def test_rho_by_reference(self):
        """Testing in place update of the shared weight affects all steps it is registered at"""
        self.task.set_time_steps(4)
        rho = np.ones(1)
        self.task.register_rho(rho, 0)
        self.task.register_rho(rho, 2)
        rho[0] = 5.0
        np.testing.assert_array_equal(self.task.rho(0), [5.0])
        np.testing.assert_array_equal(self.task.matrix_rho(2), 5.0 * np.eye(2))


class TestTaskSqrError(unittest.TestCase):
    def setUp(self):
        self.task_map = QuadraticTaskMap("quadratic")
        self.task = TaskSqrError("sqr", self.task_map)

    def test_shared_weights(self):
        np.testing.assert_array_equal(self.task.rho0, [0.0])
        np.testing.assert_array_equal(self.task.rho1, [1.0])

    def test_cost(self):
        q = np.array([2.0, 3.0])
        phi = self.task_map.compute_phi(q)
        self.task.y_star = [1.0, 1.0]

        # inactive definition does not contribute
        self.assertEqual(self.task.compute_cost(phi, 0), 0.0)

        self.task.register_rho(np.array([1.0, 0.5]), 0)
        # error is [3, 5]
        self.assertAlmostEqual(self.task.compute_cost(phi, 0), 9.0 + 12.5)
        np.testing.assert_array_almost_equal(self.task.compute_error(phi), [3.0, 5.0])

    def test_cost_jacobian(self):
        """Testing cost gradient against finite differences"""
        self.task.y_star = [0.5, -0.5]
        self.task.register_rho(np.array([2.0, 1.0]), 0)
        q = np.array([0.7, -1.3])

        gradient = self.task.compute_cost_jacobian(
            self.task_map.compute_phi(q), self.task_map.compute_jacobian(q), 0
        )
        eps = 1e-6
        for i in range(2):
            dq = np.zeros(2)
            dq[i] = eps
            cost_plus = self.task.compute_cost(self.task_map.compute_phi(q + dq), 0)
            cost_minus = self.task.compute_cost(self.task_map.compute_phi(q - dq), 0)
            self.assertAlmostEqual(gradient[i], (cost_plus - cost_minus) / (2 * eps), places=5)

    def test_inactive_gradient(self):
        q = np.ones(2)
        gradient = self.task.compute_cost_jacobian(self.task_map.compute_phi(q), self.task_map.compute_jacobian(q), 0)
        np.testing.assert_array_equal(gradient, np.zeros(2))

    def test_error_after_swap(self):
        self.task.y_star = [1.0, 1.0]
        task_map = OffsetTaskMap("offset")
        self.task.set_task_map(task_map)
        phi = task_map.compute_phi(np.array([2.0, 3.0]))
        np.testing.assert_array_equal(self.task.compute_error(phi), [2.0, 3.0, 1.0])

    def test_cost_out_of_range(self):
        self.task.register_rho(self.task.rho1, 0)
        phi = self.task_map.compute_phi(np.ones(2))
        with self.assertRaises(ValueError):
            self.task.compute_cost(phi, -1)
        with self.assertRaises(ValueError):
            self.task.compute_cost_jacobian(phi, self.task_map.compute_jacobian(np.ones(2)), -1)

    def test_register_time_span(self):
        """Testing normalized spans are mapped to inclusive step ranges"""
        self.task.set_time_steps(101)
        self.assertEqual(self.task.register_time_span((0.2, 0.8)), (20, 80))
        self.assertEqual(self.task.active_steps, tuple(range(20, 81)))
        self.assertIs(self.task.rho(50), self.task.rho1)

        self.task.set_time_steps(101)
        self.assertEqual(self.task.register_time_span((-0.1, 1.2)), (0, 100))
        self.assertEqual(len(self.task.active_steps), 101)

        self.task.set_time_steps(1)
        self.assertEqual(self.task.register_time_span((0.0, 1.0)), (0, 0))
        self.assertTrue(self.task.is_active(0))
