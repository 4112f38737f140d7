"""
Multi-branch IK solver for redundant arms.

A 7-DOF arm reaches most poses along a one-parameter family of joint
configurations. DiscretizedIKSolver samples that family by sweeping one
redundant joint over its range, seeding a Levenberg-Marquardt (or
Gauss-Newton) least-squares solve from every sample, and returning every
distinct configuration that actually reaches the target. Choosing among the
branches is left to the caller (see armteleop.control.selection).

All seeds are solved in a single vmapped, JIT-compiled batch.
"""

from typing import List, Protocol, Sequence, Tuple

import jax
import jax.numpy as jnp
import jaxopt
import numpy as np
from jax import Array

from armteleop.ik.robot import RobotModel
from armteleop.ik.utils import SE3Pose, quaternion_distance

SOLVE_MODES = ("all_discretized", "single")


class IKOracle(Protocol):
    """Anything that maps (target pose, seed) to candidate joint configurations."""

    def solve(self, target, seed: Sequence[float]) -> List[np.ndarray]:
        ...


class DiscretizedIKSolver:
    """
    IK oracle returning every redundancy branch it can find.

    Example:
        >>> arm = RobotModel("victor.urdf", end_effector_link="victor_left_arm_link_7")
        >>> solver = DiscretizedIKSolver(arm, redundant_joint=2, discretization_steps=8)
        >>> candidates = solver.solve(target_matrix, seed=measured_joints)
        >>> len(candidates)
        3
    """

    def __init__(
        self,
        robot: RobotModel,
        redundant_joint: int = 2,
        discretization_steps: int = 8,
        mode: str = "all_discretized",
        position_weight: float = 1.0,
        orientation_weight: float = 0.1,
        max_iterations: int = 50,
        tolerance: float = 1e-3,
        orientation_tolerance: float = 1e-4,
        duplicate_tolerance: float = 1e-3,
        convergence_tol: float = 1e-6,
        solver_type: str = "levenberg_marquardt",
    ):
        """
        Args:
            robot: Kinematic model of the arm.
            redundant_joint: Index of the joint swept to enumerate branches.
            discretization_steps: Number of samples over that joint's range.
            mode: "all_discretized" returns every branch, "single" returns
                  at most the first one found.
            position_weight: Weight for position residuals.
            orientation_weight: Weight for orientation residuals.
            max_iterations: Iteration cap for each seed.
            tolerance: Maximum position error (meters) for a candidate.
            orientation_tolerance: Maximum 1 - |q1 . q2| for a candidate.
            duplicate_tolerance: Candidates closer than this in joint space
                                 to an earlier one are dropped.
            convergence_tol: Stopping tolerance handed to jaxopt.
            solver_type: "levenberg_marquardt" or "gauss_newton".
        """
        if mode not in SOLVE_MODES:
            raise ValueError(f"Unknown mode: {mode}, expected one of {SOLVE_MODES}")
        if not 0 <= redundant_joint < robot.num_joints:
            raise ValueError(
                f"redundant_joint {redundant_joint} out of range for "
                f"{robot.num_joints}-joint arm"
            )
        if discretization_steps < 1:
            raise ValueError(f"discretization_steps must be >= 1, got {discretization_steps}")

        self.robot = robot
        self.redundant_joint = redundant_joint
        self.discretization_steps = discretization_steps
        self.mode = mode
        self.position_weight = position_weight
        self.orientation_weight = orientation_weight
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.orientation_tolerance = orientation_tolerance
        self.duplicate_tolerance = duplicate_tolerance

        self._lower_limits, self._upper_limits = robot.joint_limits

        residual_fn = self._make_residual_fn()
        if solver_type == "gauss_newton":
            self._solver = jaxopt.GaussNewton(
                residual_fun=residual_fn,
                maxiter=max_iterations,
                tol=convergence_tol,
                implicit_diff=False,
            )
        elif solver_type == "levenberg_marquardt":
            self._solver = jaxopt.LevenbergMarquardt(
                residual_fun=residual_fn,
                maxiter=max_iterations,
                tol=convergence_tol,
                damping_parameter=1e-4,
            )
        else:
            raise ValueError(f"Unknown solver_type: {solver_type}")

        self._solve_batch_jit = jax.jit(
            jax.vmap(self._solve_single, in_axes=(0, None, None))
        )
        self._errors_jit = jax.jit(
            jax.vmap(self._pose_errors, in_axes=(0, None, None))
        )

    def _make_residual_fn(self):
        """
        Residual vector for least squares: [position error (3), orientation error (4)].

        The target quaternion is flipped onto the same hemisphere as the
        current one so q and -q are treated as the same rotation.
        """
        robot = self.robot
        pos_weight = jnp.sqrt(self.position_weight)
        ori_weight = jnp.sqrt(self.orientation_weight)

        def residual_fn(joint_positions: Array, target_data: Tuple[Array, Array]) -> Array:
            target_pos, target_quat = target_data
            current = robot.forward_kinematics(joint_positions)

            pos_residual = pos_weight * (current.position - target_pos)

            dot = jnp.sum(current.quaternion * target_quat)
            aligned = jnp.where(dot < 0, -target_quat, target_quat)
            ori_residual = ori_weight * 2.0 * (current.quaternion - aligned)

            return jnp.concatenate([pos_residual, ori_residual])

        return residual_fn

    def _solve_single(self, initial_guess: Array, target_pos: Array, target_quat: Array) -> Array:
        result = self._solver.run(initial_guess, (target_pos, target_quat))
        return jnp.clip(result.params, self._lower_limits, self._upper_limits)

    def _pose_errors(self, joint_positions: Array, target_pos: Array, target_quat: Array):
        pose = self.robot.forward_kinematics(joint_positions)
        pos_error = jnp.linalg.norm(pose.position - target_pos)
        ori_error = quaternion_distance(pose.quaternion, target_quat)
        return pos_error, ori_error

    def seeds(self, seed: Sequence[float]) -> np.ndarray:
        """
        The caller's seed followed by one copy per discretized value of the
        redundant joint, shape (discretization_steps + 1, num_joints).
        """
        seed = np.asarray(seed, dtype=np.float64)
        if seed.shape != (self.robot.num_joints,):
            raise ValueError(
                f"Expected seed of shape ({self.robot.num_joints},), got {seed.shape}"
            )
        lower = np.asarray(self._lower_limits, dtype=np.float64)
        upper = np.asarray(self._upper_limits, dtype=np.float64)
        seed = np.clip(seed, lower, upper)

        j = self.redundant_joint
        sweep = np.linspace(lower[j], upper[j], self.discretization_steps)
        grid = np.tile(seed, (self.discretization_steps, 1))
        grid[:, j] = sweep
        return np.vstack([seed[None, :], grid])

    def solve(self, target, seed: Sequence[float]) -> List[np.ndarray]:
        """
        Find joint configurations that reach `target`.

        Args:
            target: Desired end-effector pose in the arm's base frame: a 4x4
                    matrix or any object with a to_matrix() method.
            seed: Joint configuration used to bias the search.

        Returns:
            Distinct candidate configurations (float64, in seed order).
            Empty when no seed converged.
        """
        matrix = target.to_matrix() if hasattr(target, "to_matrix") else target
        goal = SE3Pose.from_matrix(jnp.asarray(np.asarray(matrix), dtype=jnp.float32))

        seeds = jnp.asarray(self.seeds(seed), dtype=jnp.float32)
        solutions = self._solve_batch_jit(seeds, goal.position, goal.quaternion)
        pos_errors, ori_errors = self._errors_jit(solutions, goal.position, goal.quaternion)

        solutions = np.asarray(solutions, dtype=np.float64)
        pos_errors = np.asarray(pos_errors)
        ori_errors = np.asarray(ori_errors)

        candidates: List[np.ndarray] = []
        for solution, pos_error, ori_error in zip(solutions, pos_errors, ori_errors):
            # written as a positive test so NaN errors are rejected
            if not (pos_error < self.tolerance and ori_error < self.orientation_tolerance):
                continue
            if any(np.linalg.norm(solution - c) < self.duplicate_tolerance for c in candidates):
                continue
            candidates.append(solution)
            if self.mode == "single":
                break

        return candidates
