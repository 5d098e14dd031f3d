"""I/O utilities for loading robot descriptions.

This module parses standard robotics file formats into `RobotDescription`
records.
"""

from .urdf_parser import load_urdf, parse_urdf_string

__all__ = ["load_urdf", "parse_urdf_string"]
