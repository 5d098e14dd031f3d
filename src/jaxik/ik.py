"""Inverse kinematics by damped least-squares pose servoing.

Each iteration linearises the end-effector pose around the current joint
vector with the geometric Jacobian and takes the damped least-squares step

    dq = J^T (J J^T + lambda^2 I)^-1 e

towards the 6D pose error e, then clips the result into the joint limits.
Only joints on the root -> end-effector path move.
"""

import dataclasses
import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional, Union

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

from .chain import (
    Configuration,
    KinematicChain,
    as_configuration,
    forward_kinematics_frames,
    forward_kinematics_world,
    geometric_jacobian,
)
from .config import SolverConfig
from .core import RobotModel, limits
from .errors import StructureError
from .transforms import Pose, se3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IKResult:
    """Outcome of one solve.

    Attributes:
        q: Best configuration found. DOFs on the end-effector path are
            within their limits; off-path DOFs are returned as given.
        residual: Norm of the 6D pose error at `q`.
        iterations: Number of steps taken.
        converged: Whether `residual` is below the tolerance.
    """
    q: Array
    residual: float
    iterations: int
    converged: bool


def damped_least_squares(J: Array, error: Array, damping: float) -> Array:
    """Joint step dq = J^T (J J^T + damping^2 I)^-1 error."""
    JJt = J @ J.T + damping**2 * jnp.eye(J.shape[0], dtype=J.dtype)
    return J.T @ jnp.linalg.solve(JJt, error)


@partial(jax.jit, static_argnames=("link_index",))
def servo_step(
    robot: RobotModel,
    q: Array,
    target: Array,
    link_index: int,
    dof_mask: Array,
    damping: float,
    step_size: float,
):
    """One solver iteration.

    Returns:
        (residual at q, next configuration)
    """
    link_world, joint_world = forward_kinematics_frames(robot, q)
    error = se3.pose_error(target, link_world[link_index])
    J = geometric_jacobian(robot, link_world, joint_world, link_index, dof_mask)
    dq = damped_least_squares(J, error, damping)
    q_next = limits.clamp(q + step_size * dq, robot.q_min, robot.q_max)
    # Off-path DOFs keep their value even when it lies outside their limits
    q_next = jnp.where(dof_mask > 0, q_next, q)
    return jnp.linalg.norm(error), q_next


@partial(jax.jit, static_argnames=("link_index",))
def pose_residual(robot: RobotModel, q: Array, target: Array, link_index: int) -> Array:
    link_world = forward_kinematics_world(robot, q)
    return jnp.linalg.norm(se3.pose_error(target, link_world[link_index]))


class IKSolver:
    """Iterative Jacobian IK solver.

    The solver keeps only its parameters; the chain is borrowed for the
    duration of `solve`, which holds the chain's lock and writes the final
    configuration back into it.

    Args:
        config: Solver parameters, `SolverConfig()` by default.
        **overrides: Individual `SolverConfig` fields to replace.
    """

    def __init__(self, config: Optional[SolverConfig] = None, **overrides):
        config = config if config is not None else SolverConfig()
        self.config = dataclasses.replace(config, **overrides) if overrides else config

    def solve(
        self,
        chain: KinematicChain,
        target: Union[Pose, Array, np.ndarray],
        q_init: Optional[Configuration] = None,
        max_iterations: Optional[int] = None,
        tolerance: Optional[float] = None,
    ) -> IKResult:
        """Drive the chain's end-effector towards `target`.

        Never fails for an unreachable target: the closest configuration
        found is returned with `converged=False` and its residual.

        Args:
            chain: Chain to solve on.
            target: Desired end-effector world pose.
            q_init: Initial guess; the chain's cached configuration if None.
                Its on-path DOFs are clamped into their limits first.
            max_iterations: Overrides the configured iteration budget.
            tolerance: Overrides the configured tolerance.

        Raises:
            StructureError: if no movable joint lies between the root and
                the end-effector.
            DimensionError: if `q_init` has the wrong length.
        """
        if chain.path_dof == 0:
            raise StructureError(
                f"No movable joint between the root and end-effector '{chain.end_effector}'"
            )
        max_iterations = self.config.max_iterations if max_iterations is None else max_iterations
        tolerance = self.config.tolerance if tolerance is None else tolerance
        target = target.matrix if isinstance(target, Pose) else jnp.asarray(target, dtype=jnp.float64)

        with chain.locked():
            q = chain.joint_positions if q_init is None else as_configuration(chain.robot, q_init)
            q = jnp.where(chain.path_mask > 0, chain.clamp_to_limits(q), q)
            link_index = chain.end_effector_index

            converged = False
            iterations = 0
            for iterations in range(max_iterations):
                residual, q_next = servo_step(
                    chain.robot, q, target, link_index, chain.path_mask,
                    self.config.damping, self.config.step_size,
                )
                residual = float(residual)
                logger.debug("IK iteration %d: residual %.3e", iterations, residual)
                if residual < tolerance:
                    converged = True
                    break
                q = q_next
            else:
                iterations = max_iterations
                residual = float(pose_residual(chain.robot, q, target, link_index))
                converged = residual < tolerance

            chain.set_joint_positions(q)

        if converged:
            logger.info("IK converged in %d iterations (residual %.3e)", iterations, residual)
        else:
            logger.warning(
                "IK did not converge after %d iterations (residual %.3e, tolerance %.1e)",
                iterations, residual, tolerance,
            )
        return IKResult(q=q, residual=residual, iterations=iterations, converged=converged)
