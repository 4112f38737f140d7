"""
Controller motion tracking and end-effector target composition.

The translation delta is expressed in a frame frozen at the last reset
(frame_diff_rotation), not in the live controller frame, so rolling the
controller while moving it does not bend the commanded path. The rotation
delta is the relative rotation C^-1 * C_prev, applied by the composer on the
left of the last valid end-effector rotation. Keep the two conventions
paired.
"""

from typing import NamedTuple, Optional

import numpy as np

from armteleop.control.pose import Pose


class PoseDelta(NamedTuple):
    translation: np.ndarray  # (3,)
    rotation: np.ndarray  # (3, 3)

    @classmethod
    def zero(cls) -> "PoseDelta":
        return cls(np.zeros(3), np.eye(3))


class DeltaPoseTracker:
    """
    Incremental controller motion since the previous sample.

    Attributes:
        last_pose: Controller pose the next delta is measured from.
        frame_diff_rotation: Controller rotation captured at the last reset.
    """

    def __init__(self, initial_pose: Optional[Pose] = None):
        self.last_pose = initial_pose if initial_pose is not None else Pose.identity()
        self.frame_diff_rotation = np.eye(3)

    def reset(self, pose: Pose) -> None:
        """Re-anchor both the reference rotation and the previous pose to `pose`."""
        self.frame_diff_rotation = np.array(pose.rotation)
        self.last_pose = pose

    def update(self, pose: Pose, reset: bool = False) -> PoseDelta:
        """
        Delta from the previous sample to `pose`; zero when `reset` is set.

        The previous pose always advances to `pose`, whether or not the
        resulting command is later accepted.
        """
        if reset:
            self.reset(pose)
            return PoseDelta.zero()

        previous = self.last_pose
        delta = PoseDelta(
            translation=self.frame_diff_rotation @ (pose.translation - previous.translation),
            rotation=pose.rotation.T @ previous.rotation,
        )
        self.last_pose = pose
        return delta


class TargetPoseComposer:
    """Advances the last valid end-effector pose by a tracked delta."""

    @staticmethod
    def compose(ee_last_valid_pose: Pose, delta: PoseDelta) -> Pose:
        return Pose(
            ee_last_valid_pose.translation + delta.translation,
            delta.rotation @ ee_last_valid_pose.rotation,
        )
