"""
IK package

Kinematic model and inverse-kinematics oracle used by the arm controllers,
built on JAX.

    RobotModel: URDF-backed forward kinematics, joint limits, home pose
    DiscretizedIKSolver: batched least-squares IK returning every
        redundancy branch found by sweeping one joint
    IKOracle: protocol the controllers depend on
"""

from armteleop.ik.robot import RobotModel
from armteleop.ik.utils import SE3Pose
from armteleop.ik.solver import DiscretizedIKSolver, IKOracle

__all__ = [
    "RobotModel",
    "DiscretizedIKSolver",
    "IKOracle",
    "SE3Pose",
]
