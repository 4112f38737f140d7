"""
Rigid transforms for the control loop (float64 numpy).
"""

from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation


class Pose:
    """
    Rigid transform: a translation (3,) and a rotation matrix (3, 3).

    Arrays are copied and made read-only on construction, so a Pose can be
    shared between the tracker, the composer and result objects.
    """

    __slots__ = ("translation", "rotation")

    def __init__(self, translation: Sequence[float], rotation=None):
        translation = np.array(translation, dtype=np.float64)
        rotation = np.eye(3) if rotation is None else np.array(rotation, dtype=np.float64)
        if translation.shape != (3,):
            raise ValueError(f"Expected translation of shape (3,), got {translation.shape}")
        if rotation.shape != (3, 3):
            raise ValueError(f"Expected rotation of shape (3, 3), got {rotation.shape}")
        translation.flags.writeable = False
        rotation.flags.writeable = False
        self.translation = translation
        self.rotation = rotation

    @classmethod
    def identity(cls) -> "Pose":
        return cls(np.zeros(3), np.eye(3))

    @classmethod
    def from_position_quaternion(cls, position: Sequence[float], quaternion: Sequence[float]) -> "Pose":
        """Build from a position and a unit quaternion in [x, y, z, w] order."""
        quaternion = np.asarray(quaternion, dtype=np.float64)
        if quaternion.shape != (4,):
            raise ValueError(f"Expected quaternion of shape (4,), got {quaternion.shape}")
        return cls(position, Rotation.from_quat(quaternion).as_matrix())

    @classmethod
    def from_matrix(cls, matrix) -> "Pose":
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got {matrix.shape}")
        return cls(matrix[:3, 3], matrix[:3, :3])

    def to_matrix(self) -> np.ndarray:
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    @property
    def quaternion(self) -> np.ndarray:
        """Orientation as [x, y, z, w]."""
        return Rotation.from_matrix(self.rotation).as_quat()

    def allclose(self, other: "Pose", atol: float = 1e-9) -> bool:
        return (
            np.allclose(self.translation, other.translation, atol=atol)
            and np.allclose(self.rotation, other.rotation, atol=atol)
        )

    def __repr__(self) -> str:
        t = ", ".join(f"{v:.4f}" for v in self.translation)
        q = ", ".join(f"{v:.4f}" for v in self.quaternion)
        return f"Pose(t=[{t}], q_xyzw=[{q}])"
