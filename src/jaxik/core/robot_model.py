"""RobotModel PyTree data structure for JAX-native robot representation.

This module defines the compiled, array-based form of a robot and the
function that builds it from a parsed `RobotDescription`, validating the
tree on the way.
"""

import logging
from collections import deque
from typing import Dict, List, Tuple

import jax.numpy as jnp
import numpy as np
from flax import struct
from jax import Array

from jaxik.core.description import JOINT_TYPES, PRISMATIC, Joint, RobotDescription
from jaxik.core.limits import joint_limits
from jaxik.errors import StructureError, UnknownLinkError

logger = logging.getLogger(__name__)


@struct.dataclass
class RobotModel:
    """Immutable PyTree representation of a robot's kinematic structure.

    Links form an arena indexed by integer in breadth-first order from the
    root, so `parent_indices[i] < i` for every non-root link. Each non-root
    link owns the joint connecting it to its parent; per-link arrays
    describe that joint.

    Attributes:
        link_names: Tuple of all link names. Index corresponds to link ID.
        joint_names: Tuple of movable (non-fixed) joint names in document
                     order. This is the DOF vector layout.
        joint_types: Type of each DOF joint, aligned with `joint_names`.
        parent_indices: Array of shape (num_links,) where parent_indices[i]
                       is the parent link index of link i. Root link parents itself.
        joint_transforms: Array of shape (num_links, 4, 4): static origin of
                         the parent joint of link i in its parent link frame.
        joint_axes: Array of shape (num_links, 6) of screw axes
                   [vx,vy,vz,wx,wy,wz]; zero for fixed joints and the root.
        link_offsets: Array of shape (num_links, 4, 4): static offset of
                     link i from its parent joint frame.
        dof_link_indices: Array of shape (num_dof,): link driven by each DOF.
        q_min, q_max: Arrays of shape (num_dof,) with resolved joint limits.
    """
    link_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_names: Tuple[str, ...] = struct.field(pytree_node=False)
    joint_types: Tuple[str, ...] = struct.field(pytree_node=False)
    parent_indices: Array
    joint_transforms: Array
    joint_axes: Array
    link_offsets: Array
    dof_link_indices: Array
    q_min: Array
    q_max: Array

    @property
    def num_dof(self) -> int:
        return len(self.joint_names)

    def link_index(self, name: str) -> int:
        try:
            return self.link_names.index(name)
        except ValueError:
            raise UnknownLinkError(name, self.link_names) from None


def build_robot_model(description: RobotDescription) -> RobotModel:
    """Compile a parsed description into a RobotModel.

    Raises:
        StructureError: if a joint has an unsupported type or references an
            unknown link, a link has several parent joints, there is not
            exactly one root, or links are unreachable from the root.
    """
    link_names = [link.name for link in description.links]
    links = {link.name: link for link in description.links}
    if len(links) != len(link_names):
        raise StructureError(f"Duplicate link names in robot '{description.name}'")

    joint_by_child: Dict[str, Joint] = {}
    children: Dict[str, List[str]] = {name: [] for name in link_names}
    for joint in description.joints:
        if joint.joint_type not in JOINT_TYPES:
            raise StructureError(
                f"Joint '{joint.name}' has unsupported type '{joint.joint_type}'"
            )
        for end in (joint.parent, joint.child):
            if end not in links:
                raise StructureError(f"Joint '{joint.name}' references unknown link '{end}'")
        if joint.child in joint_by_child:
            raise StructureError(
                f"Link '{joint.child}' has more than one parent joint: "
                f"'{joint_by_child[joint.child].name}' and '{joint.name}'"
            )
        joint_by_child[joint.child] = joint
        children[joint.parent].append(joint.child)

    # Find root link (not a child of any joint)
    roots = [name for name in link_names if name not in joint_by_child]
    if len(roots) != 1:
        raise StructureError(f"Expected exactly one root link, found: {roots}")
    root_link = roots[0]

    # Breadth-first order; every link has at most one parent so a link is
    # reached at most once and cycles show up as unreachable links.
    ordered_links = []
    queue = deque([root_link])
    while queue:
        current = queue.popleft()
        ordered_links.append(current)
        queue.extend(children[current])

    if len(ordered_links) != len(link_names):
        unreachable = sorted(set(link_names) - set(ordered_links))
        raise StructureError(f"Links not connected to root '{root_link}': {unreachable}")

    link_map = {name: i for i, name in enumerate(ordered_links)}

    parent_indices = []
    joint_transforms = []
    joint_axes = []
    link_offsets = []
    for name in ordered_links:
        link_offsets.append(links[name].offset)
        joint = joint_by_child.get(name)
        if joint is None:
            parent_indices.append(link_map[name])  # Root parents itself
            joint_transforms.append(jnp.eye(4))
            joint_axes.append(jnp.zeros(6))
            continue
        parent_indices.append(link_map[joint.parent])
        joint_transforms.append(joint.origin)
        joint_axes.append(_screw_axis(joint))

    movable = [joint for joint in description.joints if not joint.is_fixed]
    q_min, q_max = joint_limits(movable)

    logger.debug(
        "Compiled robot '%s': %d links, %d DOF, root '%s'",
        description.name, len(ordered_links), len(movable), root_link,
    )

    return RobotModel(
        link_names=tuple(ordered_links),
        joint_names=tuple(joint.name for joint in movable),
        joint_types=tuple(joint.joint_type for joint in movable),
        parent_indices=jnp.array(parent_indices, dtype=jnp.int32),
        joint_transforms=jnp.stack(joint_transforms),
        joint_axes=jnp.stack(joint_axes),
        link_offsets=jnp.stack(link_offsets),
        dof_link_indices=jnp.array([link_map[joint.child] for joint in movable], dtype=jnp.int32),
        q_min=q_min,
        q_max=q_max,
    )


def _screw_axis(joint: Joint) -> Array:
    if joint.is_fixed:
        return jnp.zeros(6)

    axis = np.asarray(joint.axis, dtype=np.float64)
    norm = np.linalg.norm(axis)
    if axis.shape != (3,) or not np.isfinite(norm) or norm < 1e-12:
        raise StructureError(f"Joint '{joint.name}' has an invalid axis {joint.axis}")
    axis = jnp.asarray(axis / norm)

    if joint.joint_type == PRISMATIC:
        # Prismatic: [vx, vy, vz, 0, 0, 0]
        return jnp.concatenate([axis, jnp.zeros(3)])
    # Revolute and continuous: [0, 0, 0, wx, wy, wz]
    return jnp.concatenate([jnp.zeros(3), axis])
