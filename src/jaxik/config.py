"""
Dataclass configurations for the solver and the viewer.

Classes:
    SolverConfig: Parameters of the damped least-squares IK solver.
    ViewerConfig: Appearance of the interactive pose viewer.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SolverConfig:
    """IK solver parameters.

    Attributes:
        max_iterations: Iteration budget of one solve.
        tolerance: Convergence threshold on the 6D pose error norm
            (metres and radians mixed).
        damping: Damped least-squares factor lambda; the step solves
            (J J^T + lambda^2 I).
        step_size: Fraction of the least-squares step applied per iteration.
    """

    max_iterations: int = 100
    tolerance: float = 1e-6
    damping: float = 1e-3
    step_size: float = 1.0

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if not self.damping > 0.0:
            raise ValueError(f"damping must be positive, got {self.damping}")
        if not 0.0 < self.step_size <= 1.0:
            raise ValueError(f"step_size must be in (0, 1], got {self.step_size}")


@dataclass(frozen=True)
class ViewerConfig:
    """Interactive viewer settings.

    Attributes:
        title: Window title.
        link_axis_length: Length of the axis triad drawn at each link.
        world_axis_length: Length of the world-origin triad.
        target_axis_length: Length of the IK target triad.
        workspace_margin: Extra space around the reach estimate, in metres.
    """

    title: str = "jaxik"
    link_axis_length: float = 0.1
    world_axis_length: float = 0.2
    target_axis_length: float = 0.15
    workspace_margin: float = 0.1

    def __post_init__(self) -> None:
        for name in ("link_axis_length", "world_axis_length", "target_axis_length"):
            value = getattr(self, name)
            if not value > 0.0:
                raise ValueError(f"{name} must be positive, got {value}")
        if not self.workspace_margin >= 0.0:
            raise ValueError(f"workspace_margin must be >= 0, got {self.workspace_margin}")
