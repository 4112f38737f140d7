#!/usr/bin/env python3
"""
Test suite for RobotModel and DiscretizedIKSolver.

Joint limits of 0.0 are falsy in Python, so limit parsing must use explicit
`is None` checks. The solver tests run against a generated 7-DOF arm.
"""

import sys
import tempfile
import unittest
from pathlib import Path

# Add repo root to path
REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

import jax.numpy as jnp
import numpy as np

from armteleop.control.arm_controller import ArmController
from armteleop.control.messages import ArmRole, ButtonState, ControllerSample
from armteleop.control.pose import Pose
from armteleop.ik import DiscretizedIKSolver, RobotModel
from armteleop.ik.utils import quaternion_from_rotation_matrix, rotation_matrix_from_quaternion

INERTIAL = """
    <inertial>
      <mass value="1.0"/>
      <inertia ixx="0.1" ixy="0" ixz="0" iyy="0.1" iyz="0" izz="0.1"/>
    </inertial>"""


def create_single_joint_urdf(joint: str) -> str:
    return f"""<?xml version="1.0"?>
<robot name="test_robot">
  <link name="base_link">{INERTIAL}
  </link>
  <link name="link1">{INERTIAL}
  </link>
  {joint}
</robot>
"""


def create_limited_urdf(lower: float, upper: float) -> str:
    """Create a minimal URDF with specified joint limits."""
    return create_single_joint_urdf(f"""<joint name="joint1" type="revolute">
    <parent link="base_link"/>
    <child link="link1"/>
    <origin xyz="0 0 0.1" rpy="0 0 0"/>
    <axis xyz="0 0 1"/>
    <limit lower="{lower}" upper="{upper}" effort="10" velocity="1"/>
  </joint>""")


def create_continuous_urdf() -> str:
    """Create a URDF with a continuous (no-limit) joint."""
    return create_single_joint_urdf("""<joint name="joint1" type="continuous">
    <parent link="base_link"/>
    <child link="link1"/>
    <origin xyz="0 0 0.1" rpy="0 0 0"/>
    <axis xyz="0 0 1"/>
  </joint>""")


def create_seven_dof_urdf() -> str:
    """A 7-joint arm alternating z and y axes, 0.2 m between joints."""
    links = [f'  <link name="arm_link_{i}">{INERTIAL}\n  </link>' for i in range(8)]
    joints = []
    for i in range(7):
        axis = "0 0 1" if i % 2 == 0 else "0 1 0"
        joints.append(f"""  <joint name="arm_joint_{i + 1}" type="revolute">
    <parent link="arm_link_{i}"/>
    <child link="arm_link_{i + 1}"/>
    <origin xyz="0 0 0.2" rpy="0 0 0"/>
    <axis xyz="{axis}"/>
    <limit lower="-2.9" upper="2.9" effort="100" velocity="1"/>
  </joint>""")
    return (
        '<?xml version="1.0"?>\n<robot name="seven_dof">\n'
        + "\n".join(links) + "\n" + "\n".join(joints) + "\n</robot>\n"
    )


def write_urdf(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.urdf', delete=False) as f:
        f.write(content)
        return f.name


class TestJointLimitParsing(unittest.TestCase):
    """Test cases for joint limit parsing in RobotModel."""

    def load(self, content):
        urdf_path = write_urdf(content)
        try:
            return RobotModel(urdf_path, base_link="base_link", end_effector_link="link1")
        finally:
            Path(urdf_path).unlink()

    def test_zero_lower_limit(self):
        """Lower limit of 0.0 should be parsed as 0.0, not -pi."""
        lower, upper = self.load(create_limited_urdf(0.0, 1.5)).joint_limits
        self.assertAlmostEqual(float(lower[0]), 0.0, places=5,
            msg=f"Lower limit should be 0.0, got {float(lower[0])}")
        self.assertAlmostEqual(float(upper[0]), 1.5, places=5)

    def test_zero_upper_limit(self):
        lower, upper = self.load(create_limited_urdf(-1.5, 0.0)).joint_limits
        self.assertAlmostEqual(float(lower[0]), -1.5, places=5)
        self.assertAlmostEqual(float(upper[0]), 0.0, places=5)

    def test_continuous_joint_defaults_to_pi(self):
        lower, upper = self.load(create_continuous_urdf()).joint_limits
        self.assertAlmostEqual(float(lower[0]), -jnp.pi, places=5)
        self.assertAlmostEqual(float(upper[0]), jnp.pi, places=5)

    def test_default_positions_stay_inside_limits(self):
        """Zero when the range allows it, the midpoint otherwise."""
        robot = self.load(create_limited_urdf(-1.0, 1.0))
        np.testing.assert_allclose(robot.default_joint_positions(), [0.0])

        robot = self.load(create_limited_urdf(0.5, 2.0))
        np.testing.assert_allclose(robot.default_joint_positions(), [1.25], atol=1e-6)


class TestQuaternionHelpers(unittest.TestCase):

    def test_half_turn_about_x(self):
        """Trace of -1: the x pivot must be used."""
        quat = quaternion_from_rotation_matrix(jnp.diag(jnp.array([1.0, -1.0, -1.0])))
        np.testing.assert_allclose(quat, [0.0, 1.0, 0.0, 0.0], atol=1e-6)

    def test_scalar_part_non_negative(self):
        R = rotation_matrix_from_quaternion(jnp.array([-0.5, 0.5, 0.5, 0.5]))
        np.testing.assert_allclose(
            quaternion_from_rotation_matrix(R), [0.5, -0.5, -0.5, -0.5], atol=1e-6
        )


class TestSevenDofModel(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        urdf_path = write_urdf(create_seven_dof_urdf())
        try:
            cls.robot = RobotModel(urdf_path)
        finally:
            Path(urdf_path).unlink()

    def test_chain(self):
        self.assertEqual(self.robot.num_joints, 7)
        self.assertEqual(self.robot.joint_names[0], "arm_joint_1")
        self.assertEqual(self.robot.end_effector_link, "arm_link_7")

    def test_home_pose_is_straight_up(self):
        home = self.robot.home_pose()
        self.assertEqual(home.shape, (4, 4))
        self.assertEqual(home.dtype, np.float64)
        np.testing.assert_allclose(home[:3, 3], [0.0, 0.0, 1.4], atol=1e-5)
        np.testing.assert_allclose(home[:3, :3], np.eye(3), atol=1e-5)


class TestDiscretizedIKSolver(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        urdf_path = write_urdf(create_seven_dof_urdf())
        try:
            cls.robot = RobotModel(urdf_path)
        finally:
            Path(urdf_path).unlink()
        cls.solver = DiscretizedIKSolver(cls.robot, redundant_joint=2, discretization_steps=4)
        cls.q = np.array([0.3, 0.5, -0.2, 0.8, 0.1, -0.4, 0.2])

    def target_for(self, q):
        return np.asarray(self.robot.forward_kinematics_matrix(jnp.asarray(q, dtype=jnp.float32)))

    def test_seeds_sweep_redundant_joint(self):
        seeds = self.solver.seeds(self.q)

        self.assertEqual(seeds.shape, (5, 7))
        np.testing.assert_array_equal(seeds[0], self.q)
        np.testing.assert_allclose(seeds[1:, 2], np.linspace(-2.9, 2.9, 4), atol=1e-6)
        for row in seeds[1:]:
            np.testing.assert_array_equal(np.delete(row, 2), np.delete(self.q, 2))

    def test_seed_shape_checked(self):
        with self.assertRaises(ValueError):
            self.solver.seeds(np.zeros(6))

    def test_exact_seed_is_first_candidate(self):
        candidates = self.solver.solve(self.target_for(self.q), self.q)

        self.assertGreaterEqual(len(candidates), 1)
        self.assertEqual(candidates[0].dtype, np.float64)
        np.testing.assert_allclose(candidates[0], self.q, atol=1e-3)

    def test_candidates_reach_target(self):
        target = self.target_for(self.q)
        candidates = self.solver.solve(target, self.q + 0.05)

        lower, upper = (np.asarray(limit) for limit in self.robot.joint_limits)
        for candidate in candidates:
            reached = self.target_for(candidate)
            self.assertLess(np.linalg.norm(reached[:3, 3] - target[:3, 3]), 1e-3)
            self.assertTrue(np.all(candidate >= lower - 1e-6))
            self.assertTrue(np.all(candidate <= upper + 1e-6))

    def test_candidates_are_distinct(self):
        candidates = self.solver.solve(self.target_for(self.q), self.q)
        for i, a in enumerate(candidates):
            for b in candidates[i + 1:]:
                self.assertGreaterEqual(np.linalg.norm(a - b), self.solver.duplicate_tolerance)

    def test_unreachable_target_gives_no_candidates(self):
        target = np.eye(4)
        target[:3, 3] = [5.0, 0.0, 0.0]
        self.assertEqual(self.solver.solve(target, self.q), [])

    def test_accepts_pose_objects(self):
        """Control-side Pose and IK-side SE3Pose targets both work."""
        control_target = Pose.from_matrix(self.target_for(self.q))
        self.assertGreaterEqual(len(self.solver.solve(control_target, self.q)), 1)

        ik_target = self.robot.forward_kinematics(jnp.asarray(self.q, dtype=jnp.float32))
        self.assertGreaterEqual(len(self.solver.solve(ik_target, self.q)), 1)

    def test_single_mode(self):
        solver = DiscretizedIKSolver(self.robot, discretization_steps=4, mode="single")
        candidates = solver.solve(self.target_for(self.q), self.q)
        self.assertEqual(len(candidates), 1)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            DiscretizedIKSolver(self.robot, mode="fastest")
        with self.assertRaises(ValueError):
            DiscretizedIKSolver(self.robot, redundant_joint=7)
        with self.assertRaises(ValueError):
            DiscretizedIKSolver(self.robot, discretization_steps=0)
        with self.assertRaises(ValueError):
            DiscretizedIKSolver(self.robot, solver_type="newton")


class TestArmControllerWithSolver(unittest.TestCase):
    """One engaged cycle from the home pose through the real solver."""

    def test_engage_at_home_holds_home(self):
        urdf_path = write_urdf(create_seven_dof_urdf())
        try:
            robot = RobotModel(urdf_path)
        finally:
            Path(urdf_path).unlink()

        arm = ArmController.from_robot(
            "left_arm", ArmRole.LEFT, robot,
            DiscretizedIKSolver(robot, discretization_steps=4),
            controller_id=1,
        )
        sample = ControllerSample(
            id=1,
            pose=Pose([0.2, -0.1, 1.0]),
            buttons=(0, 0, ButtonState.PRESSED, 0),
            axes=(0.0, 0.0, 0.5),
        )

        result = arm.control([sample])

        self.assertTrue(result.accepted)
        self.assertLess(result.joint_distance, 1e-2)
        self.assertTrue(result.target_pose.allclose(Pose.from_matrix(robot.home_pose())))
        np.testing.assert_allclose(result.arm_command.as_array(), np.zeros(7), atol=1e-2)
        self.assertEqual(result.gripper_command.fingers, (0.5, 0.5, 0.5))


if __name__ == "__main__":
    unittest.main(verbosity=2)
