"""
Kinematic model of one arm, built from a URDF.

RobotModel parses the chain between a base link and an end-effector link and
provides a JIT-compiled forward kinematics function, joint limits and the
arm's home configuration.
"""

from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array
from scipy.spatial.transform import Rotation
from urdf_parser_py.urdf import URDF, Joint

from armteleop.ik.utils import SE3Pose

ACTUATED_JOINT_TYPES = ("revolute", "prismatic", "continuous")


class ChainLink(NamedTuple):
    """One joint of the chain, with its URDF origin folded into a constant."""
    origin: np.ndarray  # (4, 4) parent frame -> joint frame
    kind: str  # "revolute", "prismatic" or "fixed"
    axis: np.ndarray  # (3,) unit axis in the joint frame


def origin_matrix(joint: Joint) -> np.ndarray:
    """
    Constant transform from a joint's parent link to the joint frame.

    URDF rpy is roll, pitch, yaw about the fixed x, y, z axes, which is
    scipy's extrinsic "xyz" order.
    """
    xyz, rpy = [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]
    if joint.origin is not None:
        xyz = joint.origin.xyz if joint.origin.xyz is not None else xyz
        rpy = joint.origin.rpy if joint.origin.rpy is not None else rpy

    T = np.eye(4, dtype=np.float32)
    T[:3, :3] = Rotation.from_euler("xyz", rpy).as_matrix()
    T[:3, 3] = xyz
    return T


def skew(v: Array) -> Array:
    return jnp.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ])


def joint_motion(link: ChainLink, value) -> Array:
    """Transform contributed by the joint's own displacement."""
    T = jnp.eye(4)
    if link.kind == "revolute":
        # Rodrigues: R = I + sin(q) K + (1 - cos(q)) K^2
        K = skew(jnp.asarray(link.axis))
        R = jnp.eye(3) + jnp.sin(value) * K + (1.0 - jnp.cos(value)) * (K @ K)
        return T.at[:3, :3].set(R)
    if link.kind == "prismatic":
        return T.at[:3, 3].set(jnp.asarray(link.axis) * value)
    return T


class RobotModel:
    """
    A differentiable single-arm model built from a URDF file.

    Attributes:
        name: The robot's name from the URDF.
        num_joints: Number of actuated joints in the chain.
        joint_names: Actuated joint names in base-to-tip order.
        joint_limits: Tuple of (lower_limits, upper_limits) arrays.

    Example:
        >>> arm = RobotModel("victor.urdf", base_link="victor_root",
        ...                  end_effector_link="victor_right_arm_link_7")
        >>> arm.home_pose()[:3, 3]
    """

    def __init__(
        self,
        urdf_path: str,
        end_effector_link: Optional[str] = None,
        base_link: Optional[str] = None
    ):
        """
        Args:
            urdf_path: Path to the URDF file.
            end_effector_link: Tip link. If None, uses a leaf link.
            base_link: Base link. If None, uses the URDF root.
        """
        self._urdf_path = Path(urdf_path)
        self._urdf = URDF.from_xml_file(str(self._urdf_path))
        self.name = self._urdf.name

        self._base_link = base_link or self._find_root_link()
        self._end_effector_link = end_effector_link or self._find_leaf_link()

        joints = self._build_kinematic_chain()
        actuated = [j for j in joints if j.type in ACTUATED_JOINT_TYPES]
        self.joint_names = [j.name for j in actuated]
        self.num_joints = len(actuated)
        self._links = [self._chain_link(j) for j in joints]

        lower, upper = [], []
        for joint in actuated:
            # 0.0 is a valid limit, so test for None explicitly
            limit = joint.limit if joint.type != "continuous" else None
            lower.append(-np.pi if limit is None or limit.lower is None else limit.lower)
            upper.append(np.pi if limit is None or limit.upper is None else limit.upper)
        self._lower_limits = jnp.array(lower)
        self._upper_limits = jnp.array(upper)

        self._fk_fn = jax.jit(self._forward_kinematics_impl)

    @property
    def joint_limits(self) -> Tuple[Array, Array]:
        """Return (lower_limits, upper_limits) as JAX arrays."""
        return (self._lower_limits, self._upper_limits)

    @property
    def end_effector_link(self) -> str:
        return self._end_effector_link

    def _find_root_link(self) -> str:
        children = {j.child for j in self._urdf.joints}
        roots = [link.name for link in self._urdf.links if link.name not in children]
        return roots[0] if roots else self._urdf.links[0].name

    def _find_leaf_link(self) -> str:
        parents = {j.parent for j in self._urdf.joints}
        leaves = [link.name for link in self._urdf.links if link.name not in parents]
        return leaves[0] if leaves else self._urdf.links[-1].name

    def _build_kinematic_chain(self) -> List[Joint]:
        """Joints from base to end-effector, found by walking tip to root."""
        joint_by_child: Dict[str, Joint] = {j.child: j for j in self._urdf.joints}

        chain = []
        link = self._end_effector_link
        while link != self._base_link:
            joint = joint_by_child.get(link)
            if joint is None:
                raise ValueError(
                    f"No joint chain from {self._base_link} to "
                    f"{self._end_effector_link} (stops at {link})"
                )
            chain.append(joint)
            link = joint.parent
        return chain[::-1]

    @staticmethod
    def _chain_link(joint: Joint) -> ChainLink:
        if joint.type in ("revolute", "continuous"):
            kind = "revolute"
        elif joint.type == "prismatic":
            kind = "prismatic"
        else:
            kind = "fixed"
        axis = np.asarray(joint.axis if joint.axis is not None else [0.0, 0.0, 1.0], dtype=np.float32)
        return ChainLink(origin_matrix(joint), kind, axis / np.linalg.norm(axis))

    def _forward_kinematics_impl(self, joint_positions: Array) -> Array:
        T = jnp.eye(4)
        i = 0
        for link in self._links:
            T = T @ link.origin
            if link.kind != "fixed":
                T = T @ joint_motion(link, joint_positions[i])
                i += 1
        return T

    def forward_kinematics(self, joint_positions: Array) -> SE3Pose:
        """End-effector pose in the base link frame."""
        return SE3Pose.from_matrix(self._fk_fn(joint_positions))

    def forward_kinematics_matrix(self, joint_positions: Array) -> Array:
        """End-effector pose as a raw 4x4 matrix (traceable under jit/vmap)."""
        return self._fk_fn(joint_positions)

    def default_joint_positions(self) -> np.ndarray:
        """
        Home configuration: zero for every joint whose range contains zero,
        the middle of the range otherwise.
        """
        lower = np.asarray(self._lower_limits, dtype=np.float64)
        upper = np.asarray(self._upper_limits, dtype=np.float64)
        return np.where((lower <= 0.0) & (upper >= 0.0), 0.0, (lower + upper) / 2)

    def home_pose(self) -> np.ndarray:
        """End-effector pose at the home configuration, as a float64 4x4 matrix."""
        home = jnp.asarray(self.default_joint_positions(), dtype=jnp.float32)
        return np.asarray(self.forward_kinematics_matrix(home), dtype=np.float64)

    def __repr__(self) -> str:
        return (
            f"RobotModel(name='{self.name}', "
            f"joints={self.num_joints}, "
            f"chain='{self._base_link}' -> '{self._end_effector_link}')"
        )
