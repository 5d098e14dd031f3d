"""Rigid-body pose type used at the public API boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import jax
import jax.numpy as jnp
import numpy as np
from jax.tree_util import register_pytree_node_class

from . import se3, so3

Array = jax.Array
Vector = Union[Array, np.ndarray, Sequence[float]]


@register_pytree_node_class  # lets Pose flow through jit / vmap
@dataclass(frozen=True)
class Pose:
    """Immutable rigid transform in the world (or a parent) frame.

    Wraps a single 4x4 homogeneous matrix. `a @ b` composes the poses the
    same way the matrices multiply: `b` is expressed in the frame of `a`.
    """
    matrix: Array  # shape (4, 4)

    # Constructors
    @classmethod
    def identity(cls) -> "Pose":
        return cls(jnp.eye(4))

    @classmethod
    def from_matrix(cls, matrix: Vector) -> "Pose":
        matrix = jnp.asarray(matrix, dtype=jnp.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"matrix must have shape (4, 4), got {matrix.shape}")
        return cls(matrix)

    @classmethod
    def from_position_and_rotation(cls, position: Vector, rotation: Vector = None) -> "Pose":
        position = jnp.asarray(position, dtype=jnp.float64)
        rotation = jnp.eye(3) if rotation is None else jnp.asarray(rotation, dtype=jnp.float64)
        return cls(se3.from_position_and_rotation(position, rotation))

    @classmethod
    def from_xyz_rpy(cls, xyz: Vector, rpy: Vector = (0.0, 0.0, 0.0)) -> "Pose":
        """Pose from a translation and URDF-convention roll/pitch/yaw angles."""
        xyz = jnp.asarray(xyz, dtype=jnp.float64)
        rpy = jnp.asarray(rpy, dtype=jnp.float64)
        return cls(se3.from_xyz_rpy(xyz, rpy))

    # PyTree boiler-plate
    def tree_flatten(self):
        return (self.matrix,), None

    @classmethod
    def tree_unflatten(cls, aux, children):
        (matrix,) = children
        return cls(matrix)

    # Basic operations
    def compose(self, other: "Pose") -> "Pose":
        """Self ∘ other (apply *other* first, then self)."""
        return Pose(jnp.matmul(self.matrix, other.matrix))

    def __matmul__(self, other: "Pose") -> "Pose":
        return self.compose(other)

    def inverse(self) -> "Pose":
        return Pose(se3.inverse(self.matrix))

    def transform_point(self, point: Vector) -> Array:
        return se3.apply(self.matrix, jnp.asarray(point, dtype=jnp.float64))

    # Convenience helpers
    @property
    def position(self) -> Array:
        return se3.get_position(self.matrix)

    @property
    def rotation(self) -> Array:
        return se3.get_rotation(self.matrix)

    @property
    def rpy(self) -> Array:
        return so3.to_rpy(self.rotation)

    def error_to(self, target: "Pose") -> Array:
        """6D error [dp, axis-angle] that moves this pose onto *target*."""
        return se3.pose_error(target.matrix, self.matrix)

    def allclose(self, other: "Pose", atol: float = 1e-9) -> bool:
        return bool(jnp.allclose(self.matrix, other.matrix, rtol=0.0, atol=atol))
