"""
Static configuration for the teleoperation core.

Read once at startup (from keyword arguments or a YAML file) and never
re-read while the control loop is running.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from armteleop.control.messages import ArmRole
from armteleop.control.selection import SAFETY_THRESHOLD

logger = logging.getLogger(__name__)

# Controller id bound to each role unless overridden
DEFAULT_ROLE_IDS: Dict[ArmRole, int] = {
    ArmRole.LEFT: 1,
    ArmRole.RIGHT: 2,
}


@dataclass
class SolverConfig:
    """Settings for DiscretizedIKSolver."""
    redundant_joint: int = 2
    discretization_steps: int = 8
    mode: str = "all_discretized"
    max_iterations: int = 50
    tolerance: float = 1e-3
    solver_type: str = "levenberg_marquardt"


@dataclass
class ArmConfig:
    """
    One arm's wiring.

    Attributes:
        name: Arm name, e.g. "left_arm"; used in logs and joint-state output.
        role: Which hand drives this arm.
        controller_id: Controller id bound to the role. Defaults to the
                       role's entry in DEFAULT_ROLE_IDS.
        end_effector_link: Tip link in the URDF.
        base_link: Base link in the URDF (root if None).
    """
    name: str
    role: ArmRole = ArmRole.UNASSIGNED
    controller_id: Optional[int] = None
    end_effector_link: Optional[str] = None
    base_link: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.role, str):
            self.role = parse_role(self.role)
        if self.controller_id is None:
            self.controller_id = DEFAULT_ROLE_IDS.get(self.role)


@dataclass
class TeleopConfig:
    """Top-level configuration: robot description, arms, safety, solver."""
    urdf_path: Optional[str] = None
    arms: List[ArmConfig] = field(default_factory=list)
    safety_threshold: float = SAFETY_THRESHOLD
    share_solver: bool = False
    solver: SolverConfig = field(default_factory=SolverConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "TeleopConfig":
        """Build a config from plain data (e.g. parsed YAML)."""
        arms = [ArmConfig(**arm) for arm in data.get("arms", [])]
        solver = SolverConfig(**data.get("solver", {}))
        config = cls(
            urdf_path=data.get("urdf_path"),
            arms=arms,
            safety_threshold=float(data.get("safety_threshold", SAFETY_THRESHOLD)),
            share_solver=bool(data.get("share_solver", False)),
            solver=solver,
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path) -> "TeleopConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        urdf_path = data.get("urdf_path")
        if urdf_path and not Path(urdf_path).is_absolute():
            data["urdf_path"] = str(path.parent / urdf_path)
        logger.info("Loaded teleop config from %s", path)
        return cls.from_dict(data)

    def validate(self) -> None:
        if self.safety_threshold <= 0:
            raise ValueError(f"safety_threshold must be positive, got {self.safety_threshold}")
        if self.solver.mode != "all_discretized":
            # Nearest-branch selection needs more than one candidate to choose from
            logger.warning("Solver mode %r returns a single branch", self.solver.mode)

        names = [arm.name for arm in self.arms]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate arm names in config: {names}")

        # A shared solver carries one kinematic chain
        chains = {(arm.base_link, arm.end_effector_link) for arm in self.arms}
        if self.share_solver and len(chains) > 1:
            raise ValueError("share_solver requires every arm to use the same base and end-effector links")

        seen = {}
        for arm in self.arms:
            if arm.role is ArmRole.UNASSIGNED:
                continue
            if arm.role in seen:
                raise ValueError(
                    f"Role {arm.role.name} assigned to both {seen[arm.role]} and {arm.name}"
                )
            seen[arm.role] = arm.name


def parse_role(value: str) -> ArmRole:
    try:
        return ArmRole[value.strip().upper()]
    except KeyError:
        raise ValueError(
            f"Unknown arm role: {value!r}, expected one of {[r.name.lower() for r in ArmRole]}"
        ) from None
