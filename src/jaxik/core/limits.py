"""Joint limit derivation and enforcement.

Declared limits are resolved per DOF with the following policy:

1. `lower < upper` as declared: used as is.
2. Anything else (missing, equal, inverted or NaN bounds): unbounded.
3. A revolute joint still unbounded on both sides gets [-pi, pi], so that
   slider-style interaction always has a usable range.

Prismatic and continuous joints left unbounded stay unbounded; display code
must pick its own finite range for them.

Note that rule 2 also turns a joint intentionally locked with
`lower == upper` into a free joint.
"""

import math
from typing import Optional, Sequence, Tuple

import jax.numpy as jnp
from jax import Array

from jaxik.core.description import REVOLUTE, Joint


def resolve_limits(joint: Joint) -> Tuple[float, float]:
    """Resolve the usable [lower, upper] range of a movable joint."""
    lower = _as_float(joint.lower)
    upper = _as_float(joint.upper)

    if not lower < upper:  # also catches NaN
        lower, upper = -math.inf, math.inf

    if math.isinf(lower) and math.isinf(upper) and joint.joint_type == REVOLUTE:
        lower, upper = -math.pi, math.pi

    return lower, upper


def joint_limits(joints: Sequence[Joint]) -> Tuple[Array, Array]:
    """Stack resolved limits of `joints` into (q_min, q_max) vectors.

    The vectors are aligned with the given joint order; callers pass the
    movable joints in DOF order.
    """
    bounds = [resolve_limits(joint) for joint in joints]
    q_min = jnp.array([lo for lo, _ in bounds], dtype=jnp.float64).reshape(len(bounds))
    q_max = jnp.array([hi for _, hi in bounds], dtype=jnp.float64).reshape(len(bounds))
    return q_min, q_max


def clamp(q: Array, q_min: Array, q_max: Array) -> Array:
    """Clip every DOF into its range. Out-of-range input is never an error."""
    return jnp.clip(q, q_min, q_max)


def display_range(lower: float, upper: float, joint_type: str) -> Tuple[float, float]:
    """Finite range for UI controls; infinite sides fall back to +-pi or +-1 m."""
    span = 1.0 if joint_type == "prismatic" else math.pi
    lo = lower if math.isfinite(lower) else -span
    hi = upper if math.isfinite(upper) else span
    if lo >= hi:
        lo, hi = (hi - span, hi) if math.isfinite(upper) else (lo, lo + span)
    return lo, hi


def _as_float(value: Optional[float]) -> float:
    return math.nan if value is None else float(value)
