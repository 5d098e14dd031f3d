"""
JAX rigid-body math for the kinematics core.

- so3: rotation matrices and axis-angle vectors
- se3: homogeneous transforms, joint motions and pose errors
- Pose: immutable transform type returned by forward kinematics

All functions are pure and JIT-compilable.
"""

from . import so3
from . import se3
from .pose import Pose

__all__ = [
    "so3",
    "se3",
    "Pose",
]
