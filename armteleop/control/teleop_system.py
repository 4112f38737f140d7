"""
Dual-arm wiring: one independent ArmController per configured arm.

Each arm gets its own IK solver instance unless the configuration asks to
share one, in which case the shared solver is wrapped in LockedIKOracle so
only one arm can be inside a solve at a time.
"""

import logging
import threading
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from armteleop.control.arm_controller import ArmController, ArmCycleResult
from armteleop.control.messages import ControllerSample, GripperCommand
from armteleop.control.pose import Pose

if TYPE_CHECKING:
    from armteleop.config import TeleopConfig

logger = logging.getLogger(__name__)


class LockedIKOracle:
    """Serializes solve() calls on an IK solver shared between arms."""

    def __init__(self, solver, lock: Optional[threading.Lock] = None):
        self._solver = solver
        self._lock = lock if lock is not None else threading.Lock()

    def solve(self, target, seed):
        with self._lock:
            return self._solver.solve(target, seed)


class TeleopSystem:
    """
    Fans controller batches, target poses and gripper targets out to the
    arms, and collects their results keyed by arm name.
    """

    def __init__(self, arms: Iterable[ArmController], joint_names: Optional[Dict[str, List[str]]] = None):
        self.arms: Dict[str, ArmController] = {}
        for arm in arms:
            if arm.name in self.arms:
                raise ValueError(f"Duplicate arm name: {arm.name}")
            self.arms[arm.name] = arm
        self._joint_names = self._unique_joint_names(joint_names or {})

    def _unique_joint_names(self, joint_names: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """
        Per-arm joint names for joint_state(). Arms without names get
        "{arm}_joint_{i}". A name claimed by more than one arm is prefixed
        with "{arm}/" so no arm's joints shadow another's.
        """
        names = {
            arm_name: list(joint_names.get(arm_name) or
                           [f"{arm_name}_joint_{i + 1}" for i in range(arm.num_joints)])
            for arm_name, arm in self.arms.items()
        }
        counts = Counter(n for arm_names in names.values() for n in arm_names)
        clashes = {n for n, count in counts.items() if count > 1}
        if clashes:
            logger.warning("Joint names shared between arms, prefixing with arm name: %s",
                           sorted(clashes))
        return {
            arm_name: [f"{arm_name}/{n}" if n in clashes else n for n in arm_names]
            for arm_name, arm_names in names.items()
        }

    @classmethod
    def from_config(cls, config: "TeleopConfig") -> "TeleopSystem":
        """
        Build every arm from a URDF-backed config: one RobotModel and, unless
        share_solver is set, one DiscretizedIKSolver per arm.
        """
        from armteleop.ik import DiscretizedIKSolver, RobotModel

        if config.urdf_path is None:
            raise ValueError("TeleopConfig.urdf_path is required to build arms")
        if not Path(config.urdf_path).exists():
            raise FileNotFoundError(f"URDF not found: {config.urdf_path}")

        def make_solver(robot):
            s = config.solver
            return DiscretizedIKSolver(
                robot,
                redundant_joint=s.redundant_joint,
                discretization_steps=s.discretization_steps,
                mode=s.mode,
                max_iterations=s.max_iterations,
                tolerance=s.tolerance,
                solver_type=s.solver_type,
            )

        shared = None
        arms, joint_names = [], {}
        for arm_config in config.arms:
            robot = RobotModel(
                config.urdf_path,
                end_effector_link=arm_config.end_effector_link,
                base_link=arm_config.base_link,
            )
            if config.share_solver:
                if shared is None:
                    shared = LockedIKOracle(make_solver(robot))
                solver = shared
            else:
                solver = make_solver(robot)

            arms.append(ArmController.from_robot(
                arm_config.name,
                arm_config.role,
                robot,
                solver,
                controller_id=arm_config.controller_id,
                safety_threshold=config.safety_threshold,
            ))
            joint_names[arm_config.name] = list(robot.joint_names)
            logger.info("Initialized %s: %s (role %s)", arm_config.name, robot, arm_config.role.name)

        return cls(arms, joint_names)

    def __getitem__(self, name: str) -> ArmController:
        return self.arms[name]

    def control(self, samples: Iterable[ControllerSample]) -> Dict[str, ArmCycleResult]:
        """Run one cycle for every arm on the same batch of samples."""
        samples = list(samples)
        return {name: arm.control(samples) for name, arm in self.arms.items()}

    def command_target_pose(self, name: str, target: Pose) -> ArmCycleResult:
        return self.arms[name].command_target_pose(target)

    def command_gripper(self, name: str, value: float) -> GripperCommand:
        return self.arms[name].command_gripper(value)

    def update_measured_state(self, name: str, joint_positions) -> None:
        self.arms[name].update_measured_state(joint_positions)

    def joint_state(self) -> Dict[str, float]:
        """Last commanded position of every joint, keyed by joint name."""
        state = {}
        for name, arm in self.arms.items():
            for joint_name, position in zip(self._joint_names[name], arm.state.joint_position_commanded):
                state[joint_name] = float(position)
        return state
