"""SO(3) rotation operations in JAX.

Rotations are 3x3 matrices; their tangent space so(3) is represented by
axis-angle vectors whose norm is the rotation angle. Everything here is pure
and JIT-able, and accepts leading batch dimensions.
"""

import jax
import jax.numpy as jnp

Array = jax.Array

_SMALL_ANGLE = 1e-8


def skew_symmetric(v: Array) -> Array:
    """
    Cross-product matrix of a 3D vector, so that skew(v) @ u == cross(v, u).

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def exp(log_r: Array) -> Array:
    """
    Exponential map: axis-angle vector to rotation matrix (Rodrigues).

    A revolute joint turning by q about unit axis a is exp(a * q).

    Args:
        log_r: (..., 3) axis-angle vectors

    Returns:
        (..., 3, 3) rotation matrices
    """
    angle = jnp.linalg.norm(log_r, axis=-1, keepdims=True)
    small = angle < _SMALL_ANGLE

    # Taylor expansion below the threshold keeps the axis division finite
    sin_angle = jnp.where(small, angle - angle**3 / 6.0, jnp.sin(angle))
    cos_angle = jnp.where(small, 1.0 - 0.5 * angle**2, jnp.cos(angle))
    axis = jnp.where(small, log_r, log_r / jnp.where(small, 1.0, angle))

    K = skew_symmetric(axis)
    I = jnp.broadcast_to(jnp.eye(3, dtype=log_r.dtype), log_r.shape[:-1] + (3, 3))

    return I + sin_angle[..., None] * K + (1.0 - cos_angle)[..., None] * jnp.matmul(K, K)


def log(R: Array) -> Array:
    """
    Logarithm map: rotation matrix to axis-angle vector.

    This is the rotation-error measure used by the IK solver: for a current
    rotation Rc and target Rt, log(Rt @ Rc.T) is the world-frame angular
    displacement that takes Rc onto Rt.

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 3) axis-angle vectors with norm in [0, pi]
    """
    trace = jnp.trace(R, axis1=-2, axis2=-1)
    angle = jnp.arccos(jnp.clip((trace - 1.0) / 2.0, -1.0, 1.0))

    small = angle < _SMALL_ANGLE
    near_pi = jnp.abs(angle - jnp.pi) < 1e-6

    vee = jnp.stack([
        R[..., 2, 1] - R[..., 1, 2],
        R[..., 0, 2] - R[..., 2, 0],
        R[..., 1, 0] - R[..., 0, 1]
    ], axis=-1)

    sin_angle = jnp.where(small, 1.0, jnp.sin(angle))
    axis_general = vee / (2.0 * sin_angle[..., None])

    # At pi the antisymmetric part vanishes; (R + I) / 2 = a a^T instead
    B = (R + jnp.eye(3, dtype=R.dtype)) / 2.0
    column = jnp.argmax(jnp.diagonal(B, axis1=-2, axis2=-1), axis=-1)
    axis_pi = jnp.take_along_axis(B, column[..., None, None], axis=-1)[..., 0]
    axis_pi = axis_pi / jnp.linalg.norm(axis_pi, axis=-1, keepdims=True)

    log_general = angle[..., None] * jnp.where(near_pi[..., None], axis_pi, axis_general)
    return jnp.where(small[..., None], vee / 2.0, log_general)


def inverse(R: Array) -> Array:
    """Inverse of a rotation matrix (its transpose)."""
    return jnp.swapaxes(R, -1, -2)


def from_rpy(rpy: Array) -> Array:
    """
    Rotation matrix from URDF roll-pitch-yaw angles.

    URDF uses fixed-axis X-Y-Z rotations, i.e. R = Rz(yaw) @ Ry(pitch) @ Rx(roll).

    Args:
        rpy: (..., 3) array of [roll, pitch, yaw] in radians

    Returns:
        (..., 3, 3) rotation matrices
    """
    roll, pitch, yaw = rpy[..., 0], rpy[..., 1], rpy[..., 2]
    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    return jnp.stack([
        jnp.stack([cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr], axis=-1),
        jnp.stack([sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr], axis=-1),
        jnp.stack([-sp, cp * sr, cp * cr], axis=-1)
    ], axis=-2)


def to_rpy(R: Array) -> Array:
    """
    Roll-pitch-yaw angles of a rotation matrix (inverse of from_rpy).

    At gimbal lock (pitch = +-pi/2) roll is reported as 0 and the whole
    rotation about z is folded into yaw.

    Args:
        R: (..., 3, 3) rotation matrices

    Returns:
        (..., 3) array of [roll, pitch, yaw]
    """
    pitch = jnp.arcsin(jnp.clip(-R[..., 2, 0], -1.0, 1.0))
    locked = jnp.abs(R[..., 2, 0]) > 1.0 - 1e-9

    roll = jnp.where(locked, 0.0, jnp.arctan2(R[..., 2, 1], R[..., 2, 2]))
    yaw = jnp.where(
        locked,
        jnp.arctan2(-R[..., 0, 1], R[..., 1, 1]),
        jnp.arctan2(R[..., 1, 0], R[..., 0, 0]),
    )
    return jnp.stack([roll, pitch, yaw], axis=-1)
