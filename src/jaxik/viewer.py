"""
Interactive pose viewer.

Draws an RGB axis triad for every link, the world origin and the IK target
in a matplotlib 3D view, with one slider per joint, six sliders for the
target pose (x, y, z, roll, pitch, yaw) and a "Solve IK to Target" button.

Classes:
    ChainViewer: Matplotlib front-end for a KinematicChain and IKSolver.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Tuple

import numpy as np

from jaxik.chain import KinematicChain
from jaxik.config import ViewerConfig
from jaxik.core.limits import display_range
from jaxik.ik import IKResult, IKSolver
from jaxik.transforms import Pose

logger = logging.getLogger(__name__)

AXIS_COLORS = ("red", "green", "blue")
TARGET_LABELS = ("x", "y", "z", "roll", "pitch", "yaw")

Segment = Tuple[np.ndarray, np.ndarray, str]


def frame_segments(pose: Pose, length: float) -> List[Segment]:
    """Line segments of the X (red), Y (green) and Z (blue) axes of `pose`."""
    origin = np.asarray(pose.position)
    rotation = np.asarray(pose.rotation)
    return [(origin, origin + rotation[:, k] * length, AXIS_COLORS[k]) for k in range(3)]


def workspace_radius(chain: KinematicChain, margin: float = 0.1) -> float:
    """Upper bound on how far any link can get from the root origin."""
    robot = chain.robot
    offsets = np.linalg.norm(np.asarray(robot.joint_transforms)[:, :3, 3], axis=-1).sum()
    offsets += np.linalg.norm(np.asarray(robot.link_offsets)[:, :3, 3], axis=-1).sum()
    travel = 0.0
    q_min, q_max = map(np.asarray, chain.limits)
    for lower, upper, joint_type in zip(q_min, q_max, robot.joint_types):
        if joint_type == "prismatic":
            lo, hi = display_range(float(lower), float(upper), joint_type)
            travel += max(abs(lo), abs(hi))
    return max(float(offsets + travel) + margin, 0.5)


class ChainViewer:
    """Matplotlib viewer with joint and target controls.

    Args:
        chain: Chain to display; its cached configuration is what is drawn.
        solver: Solver used by the "Solve IK to Target" button.
        config: Viewer appearance.
        target: Initial target pose; the current end-effector pose if None.

    Raises:
        ImportError: If matplotlib is not installed.
    """

    def __init__(
        self,
        chain: KinematicChain,
        solver: Optional[IKSolver] = None,
        config: Optional[ViewerConfig] = None,
        target: Optional[Pose] = None,
    ) -> None:
        try:
            import matplotlib.pyplot as plt
            from matplotlib.widgets import Button, Slider
        except ImportError as exc:
            raise ImportError("matplotlib required: pip install 'jaxik[viz]'") from exc

        self.chain = chain
        self.solver = solver if solver is not None else IKSolver()
        self.config = config if config is not None else ViewerConfig()
        self.target = target if target is not None else chain.link_poses()[chain.end_effector]
        self.status = ""
        self._plt = plt
        self._syncing = False
        self._radius = workspace_radius(chain, self.config.workspace_margin)

        self.figure = plt.figure(figsize=(12, 8))
        if self.figure.canvas.manager is not None:
            self.figure.canvas.manager.set_window_title(self.config.title)
        self.ax = self.figure.add_axes([0.0, 0.05, 0.6, 0.9], projection="3d")

        rows = chain.dof + len(TARGET_LABELS)
        row_height = min(0.04, 0.8 / max(rows, 1))
        top = 0.92

        self.joint_sliders: List[Any] = []
        q_min, q_max = map(np.asarray, chain.limits)
        q = np.asarray(chain.joint_positions)
        for i, name in enumerate(chain.joint_names):
            lo, hi = display_range(float(q_min[i]), float(q_max[i]), chain.robot.joint_types[i])
            slider_ax = self.figure.add_axes([0.72, top - i * row_height, 0.2, row_height * 0.6])
            slider = Slider(slider_ax, name, lo, hi, valinit=float(np.clip(q[i], lo, hi)))
            slider.on_changed(self._on_joint_changed)
            self.joint_sliders.append(slider)

        self.target_sliders: List[Any] = []
        target_values = np.concatenate([np.asarray(self.target.position), np.asarray(self.target.rpy)])
        first = top - (chain.dof + 0.5) * row_height
        for k, label in enumerate(TARGET_LABELS):
            lo, hi = (-self._radius, self._radius) if k < 3 else (-math.pi, math.pi)
            slider_ax = self.figure.add_axes([0.72, first - k * row_height, 0.2, row_height * 0.6])
            slider = Slider(slider_ax, f"target {label}", lo, hi,
                            valinit=float(np.clip(target_values[k], lo, hi)))
            slider.on_changed(self._on_target_changed)
            self.target_sliders.append(slider)

        button_ax = self.figure.add_axes([0.72, 0.05, 0.2, 0.05])
        self.solve_button = Button(button_ax, "Solve IK to Target")
        self.solve_button.on_clicked(lambda _event: self.solve_to_target())
        self.status_text = self.figure.text(0.62, 0.12, "")

        self.redraw()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def _on_joint_changed(self, _value: float) -> None:
        if self._syncing:
            return
        q = self.chain.clamp_to_limits([slider.val for slider in self.joint_sliders])
        self.chain.forward_kinematics(q)
        self.redraw()

    def _on_target_changed(self, _value: float) -> None:
        values = [slider.val for slider in self.target_sliders]
        self.target = Pose.from_xyz_rpy(values[:3], values[3:])
        self.redraw()

    def solve_to_target(self) -> IKResult:
        """Run IK from the displayed configuration and move the joint sliders."""
        result = self.solver.solve(self.chain, self.target, q_init=self.chain.joint_positions)

        self._syncing = True
        try:
            for slider, value in zip(self.joint_sliders, np.asarray(result.q)):
                slider.set_val(float(np.clip(value, slider.valmin, slider.valmax)))
        finally:
            self._syncing = False

        if result.converged:
            self.status = f"converged in {result.iterations} iterations"
        else:
            self.status = f"not converged: residual {result.residual:.2e}"
        logger.info("Solve to target: %s", self.status)
        self.redraw()
        return result

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def redraw(self) -> None:
        ax = self.ax
        ax.clear()
        r = self._radius
        ax.set_xlim(-r, r)
        ax.set_ylim(-r, r)
        ax.set_zlim(-r, r)
        ax.set_xlabel("X")
        ax.set_ylabel("Y")
        ax.set_zlabel("Z")

        poses = self.chain.link_poses()
        names = self.chain.link_names
        parents = np.asarray(self.chain.robot.parent_indices)
        for i, name in enumerate(names):
            if parents[i] != i:
                start = np.asarray(poses[names[parents[i]]].position)
                end = np.asarray(poses[name].position)
                ax.plot(*zip(start, end), color="gray", linewidth=3)
            self._draw_frame(poses[name], self.config.link_axis_length)

        self._draw_frame(Pose.identity(), self.config.world_axis_length)
        self._draw_frame(self.target, self.config.target_axis_length, linestyle="--")

        self.status_text.set_text(self.status)
        self.figure.canvas.draw_idle()

    def _draw_frame(self, pose: Pose, length: float, linestyle: str = "-") -> None:
        for start, end, color in frame_segments(pose, length):
            self.ax.plot(*zip(start, end), color=color, linestyle=linestyle)

    def show(self) -> None:
        self._plt.show()

    def close(self) -> None:
        self._plt.close(self.figure)
