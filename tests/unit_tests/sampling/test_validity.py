import threading
import time
import unittest

import mujoco as mj
import numpy as np

from mjtask.collision import MujocoCollisionScene
from mjtask.exceptions import ConfigurationError
from mjtask.kinematics import MjxKinematics
from mjtask.problems import SamplingProblem
from mjtask.sampling import (
    CheckerState,
    RealVectorStateSpace,
    StateValidityChecker,
    ValidityCheckerParameters,
)


class TestValidityCheckerParameters(unittest.TestCase):
    def test_from_config(self):
        parameters = ValidityCheckerParameters.from_config({"SafetyMargin": 0.1, "SelfCollisionCheck": True})
        self.assertAlmostEqual(parameters.safety_margin, 0.1)
        self.assertTrue(parameters.self_collision)

        parameters = ValidityCheckerParameters.from_config({})
        self.assertEqual(parameters, ValidityCheckerParameters())


class TestStateValidityChecker(unittest.TestCase):
    def setUp(self):
        self.mj_model = mj.MjModel.from_xml_string(
            """
        <mujoco>
            <worldbody>
                <geom name="obstacle" type="sphere" size="0.1" pos="1 0 0"/>
                <body name="slider1">
                    <joint name="x" type="slide" axis="1 0 0"/>
                    <geom type="sphere" size="0.1"/>
                </body>
                <body name="slider2" pos="0 0.5 0">
                    <joint name="y" type="slide" axis="0 1 0"/>
                    <geom type="sphere" size="0.1"/>
                </body>
            </worldbody>
        </mujoco>
        """
        )
        self.problem = SamplingProblem(MjxKinematics(self.mj_model), MujocoCollisionScene(self.mj_model))
        self.problem.instantiate({"LowerBound": [-2, -2], "UpperBound": [2, 2]})
        self.space = RealVectorStateSpace(self.problem)

    def checker(self, margin=0.0, self_collision=False) -> StateValidityChecker:
        return StateValidityChecker(self.space, self.problem, ValidityCheckerParameters(margin, self_collision))

    def test_requires_scene(self):
        problem = SamplingProblem(MjxKinematics(self.mj_model))
        with self.assertRaises(ConfigurationError):
            StateValidityChecker(RealVectorStateSpace(problem), problem)

    def test_free_state(self):
        checker = self.checker()
        valid, distance = checker.is_valid_with_distance(np.array([0.0, 0.0]))
        self.assertTrue(valid)
        self.assertAlmostEqual(distance, 0.8, places=5)
        self.assertEqual(checker.state, CheckerState.IDLE)

    def test_loads_configuration(self):
        """Testing that the query leaves the checked configuration in the problem"""
        self.checker().is_valid(np.array([0.3, -0.2]))
        np.testing.assert_array_almost_equal(self.problem.q, [0.3, -0.2])

    def test_safety_margin(self):
        """Testing that states closer than the margin are invalid"""
        state = np.array([0.75, 0.0])
        self.assertTrue(self.checker().is_valid(state))

        valid, distance = self.checker(margin=0.1).is_valid_with_distance(state)
        self.assertFalse(valid)
        self.assertAlmostEqual(distance, -0.05, places=5)

    def test_collision(self):
        valid, distance = self.checker().is_valid_with_distance(np.array([1.0, 0.0]))
        self.assertFalse(valid)
        self.assertLess(distance, 0.0)

    def test_self_collision(self):
        """Testing that self-collisions are reported only if requested"""
        state = np.array([0.0, -0.45])
        self.assertTrue(self.checker().is_valid(state))
        self.assertFalse(self.checker(self_collision=True).is_valid(state))


class RecordingKinematics:
    def __init__(self):
        self.q = np.zeros(1)

    @property
    def nq(self) -> int:
        return 1

    def frame_id(self, name: str) -> int:
        raise ConfigurationError(f"frame {name} is not found")

    def update(self, q):
        self.q = np.array(q, dtype=float)


class RecordingScene:
    """Scene which reads the kinematics state lazily and records what it has seen."""

    def __init__(self, kinematics: RecordingKinematics):
        self.kinematics = kinematics
        self.loaded = np.zeros(1)
        self.records = []

    def update(self, q):
        self.loaded = np.array(q, dtype=float)
        # a slow backend makes any interleaving visible
        time.sleep(1e-4)

    def is_state_valid(self, self_collision: bool, margin: float) -> bool:
        time.sleep(1e-4)
        self.records.append((threading.get_ident(), self.kinematics.q.copy(), self.loaded.copy()))
        return bool(self.loaded[0] < 0.5)


class TestConcurrentQueries(unittest.TestCase):
    def test_queries_are_serialized(self):
        """Testing concurrent queries never observe each other's configuration"""
        kinematics = RecordingKinematics()
        scene = RecordingScene(kinematics)
        problem = SamplingProblem(kinematics, scene)
        checker = StateValidityChecker(RealVectorStateSpace(problem), problem)

        results = {}

        def run(value: float):
            results[value] = [checker.is_valid(np.array([value])) for _ in range(50)]

        threads = [threading.Thread(target=run, args=(value,)) for value in (0.0, 1.0)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results[0.0], [True] * 50)
        self.assertEqual(results[1.0], [False] * 50)
        self.assertEqual(len(scene.records), 100)
        for _, kinematics_q, scene_q in scene.records:
            np.testing.assert_array_equal(kinematics_q, scene_q)

    def test_distance_without_distance_queries(self):
        """Testing distance fallback for scenes reporting validity only"""
        kinematics = RecordingKinematics()
        problem = SamplingProblem(kinematics, RecordingScene(kinematics))
        checker = StateValidityChecker(RealVectorStateSpace(problem), problem)

        self.assertEqual(checker.is_valid_with_distance(np.array([0.0])), (True, float("inf")))
        self.assertEqual(checker.is_valid_with_distance(np.array([1.0])), (False, -1.0))

    def test_distance_on_margin(self):
        """Testing a state with clearance exactly equal to the margin reports a negative distance"""

        class DistanceScene(RecordingScene):
            def min_distance(self, self_collision: bool) -> float:
                return float(self.loaded[0])

            def is_state_valid(self, self_collision: bool, margin: float) -> bool:
                return self.min_distance(self_collision) > margin

        kinematics = RecordingKinematics()
        problem = SamplingProblem(kinematics, DistanceScene(kinematics))
        checker = StateValidityChecker(RealVectorStateSpace(problem), problem, ValidityCheckerParameters(0.25))

        valid, distance = checker.is_valid_with_distance(np.array([0.25]))
        self.assertFalse(valid)
        self.assertLess(distance, 0.0)

        valid, distance = checker.is_valid_with_distance(np.array([0.75]))
        self.assertTrue(valid)
        self.assertAlmostEqual(distance, 0.5)
