"""
Choosing among IK candidates and vetoing large joint-space jumps.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

# Joint-space jump rejection threshold (radians, Euclidean over all joints)
SAFETY_THRESHOLD = 0.7


def joint_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Euclidean distance between two joint vectors.

    Raises:
        ValueError: if the vectors differ in length. Never truncated or padded.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Joint vector length mismatch: {a.shape} vs {b.shape}")
    return float(np.sqrt(np.sum((a - b) ** 2)))


class SolutionSelector:
    """Picks the candidate nearest the seed; the first one wins ties."""

    @staticmethod
    def select(candidates: Sequence[Sequence[float]], seed: Sequence[float]) -> Tuple[np.ndarray, float]:
        """
        Returns:
            (best candidate, its distance to the seed)
        """
        if len(candidates) == 0:
            raise ValueError("Cannot select from an empty candidate set")

        best: Optional[np.ndarray] = None
        best_distance = np.inf
        for candidate in candidates:
            distance = joint_distance(candidate, seed)
            if distance < best_distance:
                best = np.asarray(candidate, dtype=np.float64)
                best_distance = distance
        return best, best_distance


class SafetyGate:
    """
    Rejects a command whose joint-space distance from the measured state is
    not strictly below `threshold`. Catches solver discontinuities (branch
    flips), not smooth large motion.
    """

    def __init__(self, threshold: float = SAFETY_THRESHOLD):
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.threshold = threshold

    def check(self, commanded: Sequence[float], measured: Sequence[float]) -> Tuple[bool, float]:
        """
        Returns:
            (accepted, distance)
        """
        distance = joint_distance(commanded, measured)
        return distance < self.threshold, distance
