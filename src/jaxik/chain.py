"""Kinematic chain: forward kinematics and geometric Jacobian.

The functions at the top of this module are pure and JIT-compilable; they
take the compiled `RobotModel` and a joint vector explicitly.
`KinematicChain` wraps them with a validated end-effector, joint limits
and the cached "current" configuration that interactive callers draw.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple, Union

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array

from .core import RobotDescription, RobotModel, build_robot_model
from .core import limits
from .errors import DimensionError, StructureError, UnknownLinkError
from .transforms import Pose, se3

logger = logging.getLogger(__name__)

Configuration = Union[Array, np.ndarray, Sequence[float]]


def as_configuration(robot: RobotModel, q: Configuration) -> Array:
    """Convert `q` to a float64 DOF vector, checking its length."""
    q = jnp.asarray(q, dtype=jnp.float64)
    if q.shape != (robot.num_dof,):
        raise DimensionError(robot.num_dof, q.shape[0] if q.ndim == 1 else q.size)
    return q


def forward_kinematics_frames(robot: RobotModel, q: Array) -> Tuple[Array, Array]:
    """World poses of every link and of every link's parent joint frame.

    The joint frame of link i is its parent link pose composed with the
    joint origin, before the joint moves; the Jacobian reads joint axes
    and positions from it.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        q: Joint values of shape (num_dof,) for movable joints only

    Returns:
        Tuple of two (num_links, 4, 4) arrays: link poses, joint frames
    """
    q = as_configuration(robot, q)
    num_links = len(robot.link_names)

    # Scatter the DOF values onto the links they drive; fixed joints stay 0
    q_full = jnp.zeros(num_links, dtype=q.dtype).at[robot.dof_link_indices].set(q)
    motions = se3.joint_motion(robot.joint_axes, q_full)

    identity = jnp.broadcast_to(jnp.eye(4), (num_links, 4, 4))
    link_world = identity.at[0].set(robot.link_offsets[0])
    joint_world = identity

    if num_links == 1:
        return link_world, joint_world

    def scan_body(carry, i):
        """Processes link `i` using its parent's world pose from `carry`."""
        link_world, joint_world = carry
        T_world_to_joint = link_world[robot.parent_indices[i]] @ robot.joint_transforms[i]
        T_world_to_link = T_world_to_joint @ motions[i] @ robot.link_offsets[i]
        return (link_world.at[i].set(T_world_to_link), joint_world.at[i].set(T_world_to_joint)), None

    # Breadth-first link order guarantees the parent is final before its children
    (link_world, joint_world), _ = jax.lax.scan(
        scan_body, (link_world, joint_world), jnp.arange(1, num_links)
    )
    return link_world, joint_world


def forward_kinematics_world(robot: RobotModel, q: Array) -> Array:
    """Array of shape (num_links, 4, 4) with world poses for all links."""
    link_world, _ = forward_kinematics_frames(robot, q)
    return link_world


def forward_kinematics(robot: RobotModel, q: Array) -> Dict[str, Pose]:
    """Compute forward kinematics for all links in the robot.

    Returns:
        Dictionary mapping every link name to its world Pose
    """
    world_transforms = _forward_kinematics_world_jit(robot, as_configuration(robot, q))
    return {name: Pose(world_transforms[i]) for i, name in enumerate(robot.link_names)}


def serial_path(robot: RobotModel, link_index: int) -> List[int]:
    """Link indices from the root down to `link_index` (inclusive)."""
    parents = np.asarray(robot.parent_indices)
    path = [int(link_index)]
    while parents[path[-1]] != path[-1]:
        path.append(int(parents[path[-1]]))
        if len(path) > len(parents):
            raise StructureError(f"Link '{robot.link_names[link_index]}' has no path to the root")
    return path[::-1]


def path_dof_mask(robot: RobotModel, link_index: int) -> Array:
    """1.0 for each DOF whose joint lies on the root -> link path, else 0.0."""
    on_path = np.isin(np.asarray(robot.dof_link_indices), serial_path(robot, link_index))
    return jnp.asarray(on_path, dtype=jnp.float64)


def geometric_jacobian(
    robot: RobotModel,
    link_world: Array,
    joint_world: Array,
    link_index: int,
    dof_mask: Array,
) -> Array:
    """6 x num_dof geometric Jacobian from precomputed FK frames.

    Rows are [linear velocity, angular velocity] in the world frame, matching
    `se3.pose_error`. For a revolute DOF with world axis z at point p the
    column is [z x (p_ee - p), z]; for a prismatic DOF it is [z, 0]. Columns
    with `dof_mask == 0` are zeroed.
    """
    frames = joint_world[robot.dof_link_indices]
    axes = robot.joint_axes[robot.dof_link_indices]

    rotations = frames[:, :3, :3]
    origins = frames[:, :3, 3]
    linear_axes = jnp.einsum("nij,nj->ni", rotations, axes[:, :3])
    angular_axes = jnp.einsum("nij,nj->ni", rotations, axes[:, 3:])

    p_ee = link_world[link_index, :3, 3]
    J_v = jnp.cross(angular_axes, p_ee - origins) + linear_axes
    J = jnp.concatenate([J_v, angular_axes], axis=-1).T  # (6, num_dof)
    return J * dof_mask[None, :]


def jacobian(robot: RobotModel, q: Array, link_name: str) -> Array:
    """Compute the 6D geometric Jacobian of a link w.r.t. joint values.

    Args:
        robot: RobotModel containing the robot's kinematic structure
        q: Joint values of shape (num_dof,)
        link_name: Name of the target link

    Returns:
        6 x num_dof Jacobian; DOFs that do not move the link give zero columns
    """
    link_idx = robot.link_index(link_name)
    link_world, joint_world = forward_kinematics_frames(robot, q)
    return geometric_jacobian(robot, link_world, joint_world, link_idx, path_dof_mask(robot, link_idx))


_forward_kinematics_world_jit = jax.jit(forward_kinematics_world)


class KinematicChain:
    """A robot's link/joint tree with a designated end-effector.

    The topology is fixed at construction. The only mutable state is the
    cached joint configuration, updated by every `forward_kinematics` call
    and by IK solves; `locked()` serialises access to it.

    Args:
        description: Parsed structural model.
        end_effector: Link driven by IK; defaults to the last declared link.

    Raises:
        StructureError: if the tree is malformed or the end-effector does
            not exist.
    """

    def __init__(self, description: RobotDescription, end_effector: Optional[str] = None):
        self.description = description
        self.robot = build_robot_model(description)

        if end_effector is None:
            end_effector = description.default_end_effector()
        self.end_effector = end_effector
        self.end_effector_index = self.robot.link_index(end_effector)

        self.path_indices = serial_path(self.robot, self.end_effector_index)
        self.path_mask = path_dof_mask(self.robot, self.end_effector_index)

        self._lock = threading.RLock()
        self._q = self.clamp_to_limits(jnp.zeros(self.dof))

        logger.debug(
            "Chain '%s': end-effector '%s', %d of %d DOF on its path",
            description.name, end_effector, self.path_dof, self.dof,
        )

    @classmethod
    def from_urdf(cls, urdf_path: str, end_effector: Optional[str] = None) -> "KinematicChain":
        from .io import load_urdf
        return cls(load_urdf(urdf_path), end_effector)

    def __repr__(self) -> str:
        return (f"KinematicChain({self.description.name!r}, end_effector={self.end_effector!r}, "
                f"dof={self.dof})")

    # Structure
    @property
    def dof(self) -> int:
        return self.robot.num_dof

    @property
    def joint_names(self) -> Tuple[str, ...]:
        return self.robot.joint_names

    @property
    def link_names(self) -> Tuple[str, ...]:
        return self.robot.link_names

    @property
    def limits(self) -> Tuple[Array, Array]:
        """(q_min, q_max), aligned with `joint_names`. Bounds may be infinite."""
        return self.robot.q_min, self.robot.q_max

    @property
    def serial_path(self) -> List[str]:
        """Link names from the root to the end-effector."""
        return [self.robot.link_names[i] for i in self.path_indices]

    @property
    def path_joint_names(self) -> List[str]:
        return [name for name, on_path in zip(self.joint_names, np.asarray(self.path_mask)) if on_path]

    @property
    def path_dof(self) -> int:
        return int(np.sum(np.asarray(self.path_mask)))

    # Joint state
    def locked(self) -> threading.RLock:
        """Lock to hold for exclusive use of the cached configuration."""
        return self._lock

    @property
    def joint_positions(self) -> Array:
        return self._q

    def set_joint_positions(self, q: Configuration) -> None:
        q = as_configuration(self.robot, q)
        with self._lock:
            self._q = q

    def clamp_to_limits(self, q: Configuration) -> Array:
        """Clip every DOF of `q` into its joint limits."""
        return limits.clamp(as_configuration(self.robot, q), self.robot.q_min, self.robot.q_max)

    # Kinematics
    def forward_kinematics(self, q: Configuration) -> Dict[str, Pose]:
        """World pose of every link at `q`; `q` becomes the cached configuration."""
        q = as_configuration(self.robot, q)
        with self._lock:
            self._q = q
            return forward_kinematics(self.robot, q)

    def link_poses(self) -> Dict[str, Pose]:
        """World pose of every link at the cached configuration."""
        with self._lock:
            return forward_kinematics(self.robot, self._q)

    def end_effector_pose(self, q: Configuration) -> Pose:
        poses = self.forward_kinematics(q)
        try:
            return poses[self.end_effector]
        except KeyError:
            raise UnknownLinkError(self.end_effector, self.link_names) from None

    def jacobian(self, q: Configuration) -> Array:
        """6 x dof geometric Jacobian of the end-effector; off-path columns are zero."""
        q = as_configuration(self.robot, q)
        link_world, joint_world = forward_kinematics_frames(self.robot, q)
        return geometric_jacobian(self.robot, link_world, joint_world, self.end_effector_index, self.path_mask)
