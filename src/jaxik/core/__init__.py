"""Core robot model data structures.

`RobotDescription` is the model as declared; `RobotModel` is its compiled,
JAX-native arena form.
"""

from .description import Joint, Link, RobotDescription
from .limits import clamp, joint_limits, resolve_limits
from .robot_model import RobotModel, build_robot_model

__all__ = [
    "Joint",
    "Link",
    "RobotDescription",
    "RobotModel",
    "build_robot_model",
    "clamp",
    "joint_limits",
    "resolve_limits",
]
