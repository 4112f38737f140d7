"""
armteleop: dual-arm VR teleoperation core

Maps tracked hand-controller samples to joint commands for redundant 7-DOF
arms. See armteleop.control for the control loop and armteleop.ik for the
kinematic model and IK oracle.
"""

from armteleop.control import (
    ArmController,
    ArmCycleResult,
    ArmRole,
    ButtonState,
    ControllerSample,
    GripperCommand,
    JointCommand,
    Pose,
    TeleopSystem,
)
from armteleop.config import ArmConfig, SolverConfig, TeleopConfig

__version__ = "0.1.0"

__all__ = [
    "ArmConfig",
    "ArmController",
    "ArmCycleResult",
    "ArmRole",
    "ButtonState",
    "ControllerSample",
    "GripperCommand",
    "JointCommand",
    "Pose",
    "SolverConfig",
    "TeleopConfig",
    "TeleopSystem",
]
