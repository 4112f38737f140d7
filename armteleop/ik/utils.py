"""
SE3 pose container and rotation helpers for the JAX side of the IK stack.

The control loop works in float64 numpy (see armteleop.control.pose); the
solver works in JAX. SE3Pose is the hand-off type between the two.
"""

from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array


@dataclass
class SE3Pose:
    """
    Rigid body pose consumed by the IK solver.

    Attributes:
        position: A (3,) array representing [x, y, z] translation.
        quaternion: A (4,) array representing [w, x, y, z] orientation.
                    Uses scalar-first (Hamilton) convention.
    """
    position: Array
    quaternion: Array

    @classmethod
    def from_matrix(cls, matrix) -> "SE3Pose":
        """Create an SE3Pose from a 4x4 homogeneous transformation matrix."""
        matrix = jnp.asarray(matrix)
        position = matrix[:3, 3]
        quaternion = quaternion_from_rotation_matrix(matrix[:3, :3])
        return cls(position=position, quaternion=quaternion)

    def to_matrix(self) -> Array:
        """Convert to a 4x4 homogeneous transformation matrix."""
        T = jnp.eye(4)
        T = T.at[:3, :3].set(rotation_matrix_from_quaternion(self.quaternion))
        T = T.at[:3, 3].set(self.position)
        return T


def rotation_matrix_from_quaternion(quat: Array) -> Array:
    """
    Convert a quaternion [w, x, y, z] to a 3x3 rotation matrix.

    The quaternion is normalized first, so slightly denormalized input from
    tracking hardware is accepted.
    """
    q = normalize_quaternion(quat)
    w, x, y, z = q[0], q[1], q[2], q[3]

    return jnp.array([
        [1 - 2*(y*y + z*z), 2*(x*y - z*w), 2*(x*z + y*w)],
        [2*(x*y + z*w), 1 - 2*(x*x + z*z), 2*(y*z - x*w)],
        [2*(x*z - y*w), 2*(y*z + x*w), 1 - 2*(x*x + y*y)]
    ])


def quaternion_from_rotation_matrix(R: Array) -> Array:
    """
    Convert a 3x3 rotation matrix to a quaternion [w, x, y, z].

    Row i of `scaled` is 4 * q_i * q. The row with the largest diagonal
    pivot is the numerically safe one to normalize. Indexing by argmax keeps
    the function traceable under jit/vmap. The result has a non-negative
    scalar part.
    """
    pivots = jnp.array([
        1.0 + R[0, 0] + R[1, 1] + R[2, 2],
        1.0 + R[0, 0] - R[1, 1] - R[2, 2],
        1.0 - R[0, 0] + R[1, 1] - R[2, 2],
        1.0 - R[0, 0] - R[1, 1] + R[2, 2],
    ])
    scaled = jnp.array([
        [pivots[0], R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1]],
        [R[2, 1] - R[1, 2], pivots[1], R[0, 1] + R[1, 0], R[0, 2] + R[2, 0]],
        [R[0, 2] - R[2, 0], R[0, 1] + R[1, 0], pivots[2], R[1, 2] + R[2, 1]],
        [R[1, 0] - R[0, 1], R[0, 2] + R[2, 0], R[1, 2] + R[2, 1], pivots[3]],
    ])
    quat = normalize_quaternion(scaled[jnp.argmax(pivots)])
    return jnp.where(quat[0] < 0, -quat, quat)


def normalize_quaternion(quat: Array) -> Array:
    """Normalize a quaternion to unit length."""
    return quat / jnp.linalg.norm(quat)


def quaternion_distance(q1: Array, q2: Array) -> Array:
    """1 - |q1 . q2|: zero for identical rotations, one at 180 degrees."""
    return 1.0 - jnp.abs(jnp.sum(q1 * q2))
