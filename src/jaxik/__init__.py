"""
jaxik: forward and inverse kinematics for URDF serial chains.

Forward kinematics, the geometric Jacobian and a damped least-squares IK
solver, implemented as pure JAX functions over an array-based robot model,
plus a URDF loader, a command-line tool and an interactive viewer.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import core
from . import io
from .chain import KinematicChain
from .config import SolverConfig, ViewerConfig
from .errors import DimensionError, KinematicsError, StructureError, UnknownLinkError
from .ik import IKResult, IKSolver
from .transforms import Pose

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "io",
    "KinematicChain",
    "IKSolver",
    "IKResult",
    "Pose",
    "SolverConfig",
    "ViewerConfig",
    "KinematicsError",
    "StructureError",
    "UnknownLinkError",
    "DimensionError",
]
