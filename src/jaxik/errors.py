"""Exceptions raised by the kinematics core.

Non-convergence of the IK solver is deliberately absent: it is reported in
the solver's result, not raised.
"""


class KinematicsError(Exception):
    """Base class for all jaxik errors."""


class StructureError(KinematicsError, ValueError):
    """The link/joint tree is malformed or the end-effector cannot be driven."""


class UnknownLinkError(StructureError):
    """A link name does not exist in the model."""

    def __init__(self, name: str, available=()):
        self.name = name
        message = f"Link '{name}' not found in robot model"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)


class DimensionError(KinematicsError, ValueError):
    """A joint configuration has the wrong number of values."""

    def __init__(self, expected: int, actual: int, what: str = "joint configuration"):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {what} of length {expected}, got {actual}")
