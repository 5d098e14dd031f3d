"""SE(3) rigid-body transforms as 4x4 homogeneous matrices in JAX.

Joint axes are stored as 6D screw vectors [vx, vy, vz, wx, wy, wz]: a
prismatic joint has only a linear part, a revolute joint only an angular
part. Pose errors use the same [linear, angular] ordering so they line up
with the rows of the geometric Jacobian.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=p.dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    return T.at[..., 3, 3].set(1.0)


def from_xyz_rpy(xyz: Array, rpy: Array) -> Array:
    """Transform from a URDF-style origin (translation + roll/pitch/yaw)."""
    return from_position_and_rotation(xyz, so3.from_rpy(rpy))


def joint_motion(axis: Array, q: Array) -> Array:
    """
    Transform produced by moving a joint with screw axis `axis` to value `q`.

    Revolute joints rotate by q about the angular part, prismatic joints
    translate by q along the linear part, and a zero axis (fixed joint)
    yields the identity.

    Args:
        axis: (..., 6) screw axis [v, w], with either v or w zero
        q: (...) joint values

    Returns:
        (..., 4, 4) joint motion transforms
    """
    q = jnp.asarray(q)[..., None]
    return from_position_and_rotation(axis[..., :3] * q, so3.exp(axis[..., 3:] * q))


def inverse(T: Array) -> Array:
    """
    Inverse of SE(3) transforms using the block structure
    T^-1 = [[R^T, -R^T t], [0, 1]].
    """
    R_inv = so3.inverse(T[..., :3, :3])
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, T[..., :3, 3])
    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """
    Apply SE(3) transformation to points.

    Args:
        T: (..., 4, 4) transformation matrix
        points: (..., 3) point(s) expressed in the frame of T

    Returns:
        (..., 3) points in the parent frame of T
    """
    return jnp.einsum("...ij,...j->...i", T[..., :3, :3], points) + T[..., :3, 3]


def get_position(T: Array) -> Array:
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    return T[..., :3, :3]


def pose_error(target: Array, current: Array) -> Array:
    """
    6D world-frame error that moves `current` onto `target`.

    The linear part is the plain position difference; the angular part is
    the axis-angle vector of target.R @ current.R^T.

    Args:
        target: (..., 4, 4) desired transform
        current: (..., 4, 4) actual transform

    Returns:
        (..., 6) error [dx, dy, dz, rx, ry, rz]
    """
    dp = get_position(target) - get_position(current)
    dR = jnp.matmul(get_rotation(target), so3.inverse(get_rotation(current)))
    return jnp.concatenate([dp, so3.log(dR)], axis=-1)
