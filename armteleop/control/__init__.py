"""
Control package

The per-sample teleoperation loop: message types, clutch, delta tracking,
target composition, IK candidate selection, the joint-space safety gate and
the per-arm orchestrator.
"""

from armteleop.control.messages import (
    ActuatorCommand,
    ArmRole,
    ButtonState,
    ControllerSample,
    GripperCommand,
    JointCommand,
)
from armteleop.control.pose import Pose
from armteleop.control.clutch import ClutchState, ClutchStateMachine
from armteleop.control.tracking import DeltaPoseTracker, PoseDelta, TargetPoseComposer
from armteleop.control.selection import SafetyGate, SolutionSelector, joint_distance
from armteleop.control.arm_controller import ArmController, ArmCycleResult, ArmState
from armteleop.control.teleop_system import LockedIKOracle, TeleopSystem

__all__ = [
    "ActuatorCommand",
    "ArmController",
    "ArmCycleResult",
    "ArmRole",
    "ArmState",
    "ButtonState",
    "ClutchState",
    "ClutchStateMachine",
    "ControllerSample",
    "DeltaPoseTracker",
    "GripperCommand",
    "JointCommand",
    "LockedIKOracle",
    "Pose",
    "PoseDelta",
    "SafetyGate",
    "SolutionSelector",
    "TargetPoseComposer",
    "TeleopSystem",
    "joint_distance",
]
