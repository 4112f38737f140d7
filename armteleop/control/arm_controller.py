"""
Per-arm teleoperation controller.

ArmController turns a batch of controller samples into at most one joint
command and one gripper command for its arm:

    clutch -> delta tracking -> target composition -> IK -> nearest
    candidate -> safety gate -> command

Everything that can go wrong at runtime (no matching controller, clutch
disengaged, no IK solution, rejected jump) is handled inside one cycle and
only logged; the arm simply holds its last accepted pose. Length mismatches
between joint vectors are wiring defects and raise ValueError.
"""

import logging
import threading
from typing import Iterable, NamedTuple, Optional, Sequence

import numpy as np

from armteleop.control.clutch import ClutchStateMachine
from armteleop.control.messages import (
    AXIS_GRIPPER,
    BUTTON_CLUTCH,
    BUTTON_RESET,
    NUM_JOINTS,
    ArmRole,
    ControllerSample,
    GripperCommand,
    JointCommand,
)
from armteleop.control.pose import Pose
from armteleop.control.selection import SAFETY_THRESHOLD, SafetyGate, SolutionSelector
from armteleop.control.tracking import DeltaPoseTracker, TargetPoseComposer

logger = logging.getLogger(__name__)


class ArmCycleResult(NamedTuple):
    """Outcome of one control cycle for one arm."""
    arm_command: Optional[JointCommand] = None
    gripper_command: Optional[GripperCommand] = None
    target_pose: Optional[Pose] = None
    num_solutions: int = 0
    joint_distance: Optional[float] = None
    accepted: bool = False


class ArmState:
    """
    Persistent state of one arm, owned and mutated only by its ArmController.

    The clutch and tracker components hold the edge-detection and anchor
    state; the properties below expose it under the arm's own vocabulary.
    """

    def __init__(self, home_pose: Pose, home_joint_positions: Sequence[float]):
        self.clutch = ClutchStateMachine()
        self.tracker = DeltaPoseTracker()
        self.initialized = False
        self.ee_last_valid_pose = home_pose
        self.joint_position_measured = np.array(home_joint_positions, dtype=np.float64)
        self.joint_position_commanded = np.array(home_joint_positions, dtype=np.float64)

    @property
    def enabled(self) -> bool:
        return self.clutch.engaged

    @property
    def trackpad_was_pressed(self) -> bool:
        return self.clutch.was_pressed

    @property
    def controller_last_pose(self) -> Pose:
        return self.tracker.last_pose

    @property
    def controller_frame_diff_rotation(self) -> np.ndarray:
        return self.tracker.frame_diff_rotation


class ArmController:
    """
    Drives one arm from the hand controller bound to its role.

    Args:
        name: Arm name used in logs, e.g. "left_arm".
        role: Hand role; UNASSIGNED arms never move.
        controller_id: Controller id bound to the role.
        ik_solver: IK oracle with solve(target, seed) -> list of candidates.
        home_pose: End-effector pose at startup (arm base frame).
        home_joint_positions: Joint configuration at startup.
        safety_threshold: Maximum joint-space step accepted (radians).

    Example:
        >>> arm = ArmController.from_robot("right_arm", ArmRole.RIGHT, robot, solver,
        ...                                controller_id=2)
        >>> result = arm.control(samples)
        >>> if result.arm_command is not None:
        ...     publish(result.arm_command)
    """

    def __init__(
        self,
        name: str,
        role: ArmRole,
        controller_id: Optional[int],
        ik_solver,
        home_pose: Pose,
        home_joint_positions: Sequence[float],
        safety_threshold: float = SAFETY_THRESHOLD,
    ):
        if len(home_joint_positions) != NUM_JOINTS:
            raise ValueError(
                f"Expected {NUM_JOINTS} home joint positions for {name}, "
                f"got {len(home_joint_positions)}"
            )
        if role is not ArmRole.UNASSIGNED and controller_id is None:
            raise ValueError(f"Arm {name} has role {role.name} but no controller id")

        self.name = name
        self.role = role
        self.controller_id = controller_id
        self.ik_solver = ik_solver
        self.num_joints = NUM_JOINTS
        self.selector = SolutionSelector()
        self.safety_gate = SafetyGate(safety_threshold)
        self.state = ArmState(home_pose, home_joint_positions)
        self._measured_lock = threading.Lock()

    @classmethod
    def from_robot(
        cls,
        name: str,
        role: ArmRole,
        robot,
        ik_solver,
        controller_id: Optional[int] = None,
        safety_threshold: float = SAFETY_THRESHOLD,
    ) -> "ArmController":
        """Seed the arm's state from a RobotModel's home configuration."""
        if robot.num_joints != NUM_JOINTS:
            raise ValueError(
                f"Arm {name} needs a {NUM_JOINTS}-joint chain, "
                f"{robot!r} has {robot.num_joints}"
            )
        return cls(
            name=name,
            role=role,
            controller_id=controller_id,
            ik_solver=ik_solver,
            home_pose=Pose.from_matrix(robot.home_pose()),
            home_joint_positions=robot.default_joint_positions(),
            safety_threshold=safety_threshold,
        )

    # -- feedback channel ------------------------------------------------

    def update_measured_state(self, joint_positions: Sequence[float]) -> None:
        """Store the latest measured joint positions (may be called from another thread)."""
        positions = np.array(joint_positions, dtype=np.float64)
        if positions.shape != (self.num_joints,):
            raise ValueError(
                f"Expected {self.num_joints} measured joint positions for {self.name}, "
                f"got shape {positions.shape}"
            )
        with self._measured_lock:
            self.state.joint_position_measured = positions

    def measured_joint_positions(self) -> np.ndarray:
        """Consistent copy of the measured joint positions."""
        with self._measured_lock:
            return self.state.joint_position_measured.copy()

    # -- control cycle ---------------------------------------------------

    def find_sample(self, samples: Iterable[ControllerSample]) -> Optional[ControllerSample]:
        """The sample from this arm's controller, or None."""
        if self.role is ArmRole.UNASSIGNED:
            return None
        if self.role not in (ArmRole.LEFT, ArmRole.RIGHT):
            raise ValueError(f"Unhandled arm role: {self.role}")

        matched = [s for s in samples if s.id == self.controller_id]
        if len(matched) > 1:
            logger.warning(
                "%d samples carry controller id %d for %s, using the last",
                len(matched), self.controller_id, self.name,
            )
        return matched[-1] if matched else None

    def control(self, samples: Iterable[ControllerSample]) -> ArmCycleResult:
        """
        Run one control cycle on a batch of controller samples.

        Returns:
            ArmCycleResult. arm_command is set only when the safety gate
            accepted a candidate; gripper_command is set whenever this arm's
            controller was present.
        """
        sample = self.find_sample(samples)
        if sample is None:
            logger.debug("No controller sample for %s", self.name)
            return ArmCycleResult()

        gripper_command = GripperCommand.uniform(sample.axes[AXIS_GRIPPER])

        state = self.state
        engaged_now = state.clutch.update(sample.button(BUTTON_CLUTCH))
        if engaged_now:
            logger.info("Tracking engaged for %s", self.name)
        if not state.enabled:
            return ArmCycleResult(gripper_command=gripper_command)

        reset = engaged_now or sample.is_pressed(BUTTON_RESET) or not state.initialized
        delta = state.tracker.update(sample.pose, reset=reset)
        state.initialized = True

        target = TargetPoseComposer.compose(state.ee_last_valid_pose, delta)
        return self._solve_and_gate(target)._replace(gripper_command=gripper_command)

    def command_target_pose(self, target: Pose) -> ArmCycleResult:
        """Move toward an absolute end-effector target, bypassing clutch and tracking."""
        return self._solve_and_gate(target)

    def command_gripper(self, value: float) -> GripperCommand:
        return GripperCommand.uniform(value)

    def _solve_and_gate(self, target: Pose) -> ArmCycleResult:
        seed = self.measured_joint_positions()
        candidates = self.ik_solver.solve(target, seed)

        if len(candidates) == 0:
            logger.info("Got 0 solutions for %s, holding position", self.name)
            return ArmCycleResult(target_pose=target)

        best, _ = self.selector.select(candidates, seed)
        accepted, distance = self.safety_gate.check(best, seed)

        if not accepted:
            logger.warning(
                "Joint space error for %s: %.4f (limit %.2f) from %d solutions, command suppressed",
                self.name, distance, self.safety_gate.threshold, len(candidates),
            )
            return ArmCycleResult(
                target_pose=target,
                num_solutions=len(candidates),
                joint_distance=distance,
            )

        self.state.ee_last_valid_pose = target
        self.state.joint_position_commanded = best
        logger.debug(
            "Joint space error for %s: %.4f from %d solutions",
            self.name, distance, len(candidates),
        )
        return ArmCycleResult(
            arm_command=JointCommand(best),
            target_pose=target,
            num_solutions=len(candidates),
            joint_distance=distance,
            accepted=True,
        )
