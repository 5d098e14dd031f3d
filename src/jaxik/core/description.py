"""Parsed structural description of a robot.

These are plain immutable records produced by a model loader (see
`jaxik.io.load_urdf`) or built by hand. They keep the model exactly as
declared, including document order and raw limit fields; compiling them
into the array form used for computation is `build_robot_model`'s job.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import jax.numpy as jnp
from jax import Array

from jaxik.errors import StructureError
from jaxik.transforms import se3

Vec3 = Tuple[float, float, float]

FIXED = "fixed"
REVOLUTE = "revolute"
CONTINUOUS = "continuous"
PRISMATIC = "prismatic"
JOINT_TYPES = (FIXED, REVOLUTE, CONTINUOUS, PRISMATIC)


@dataclass(frozen=True)
class Link:
    """A rigid body in the tree.

    Attributes:
        name: Unique link name.
        xyz, rpy: Static offset of the link frame from its parent joint
                  frame. URDF link frames coincide with the joint frame,
                  so loaders leave this at zero.
    """
    name: str
    xyz: Vec3 = (0.0, 0.0, 0.0)
    rpy: Vec3 = (0.0, 0.0, 0.0)

    @property
    def offset(self) -> Array:
        return se3.from_xyz_rpy(jnp.asarray(self.xyz, dtype=jnp.float64),
                                jnp.asarray(self.rpy, dtype=jnp.float64))


@dataclass(frozen=True)
class Joint:
    """An edge of the tree connecting a parent link to a child link.

    Attributes:
        name: Unique joint name.
        joint_type: One of `JOINT_TYPES`.
        parent, child: Link names.
        xyz, rpy: Static origin of the joint frame in the parent link frame.
        axis: Motion axis in the joint frame (need not be normalised here);
              URDF default x.
        lower, upper: Position limits as declared; None when absent.
    """
    name: str
    joint_type: str
    parent: str
    child: str
    xyz: Vec3 = (0.0, 0.0, 0.0)
    rpy: Vec3 = (0.0, 0.0, 0.0)
    axis: Vec3 = (1.0, 0.0, 0.0)
    lower: Optional[float] = None
    upper: Optional[float] = None

    @property
    def is_fixed(self) -> bool:
        return self.joint_type == FIXED

    @property
    def origin(self) -> Array:
        return se3.from_xyz_rpy(jnp.asarray(self.xyz, dtype=jnp.float64),
                                jnp.asarray(self.rpy, dtype=jnp.float64))


@dataclass(frozen=True)
class RobotDescription:
    """Links and joints of one robot, in declaration order."""
    name: str
    links: Tuple[Link, ...]
    joints: Tuple[Joint, ...]

    @property
    def link_names(self) -> Tuple[str, ...]:
        return tuple(link.name for link in self.links)

    def default_end_effector(self) -> str:
        """The last declared link, used when no end-effector is requested."""
        if not self.links:
            raise StructureError(f"Robot '{self.name}' declares no links")
        return self.links[-1].name
