"""
Command-line entry point.

Loads a URDF, prints the chain summary, optionally solves IK for a target
pose given on the command line, and opens the interactive viewer.

Usage examples::

    # Open the viewer on a model, end-effector defaults to the last link
    jaxik --urdf robot.urdf

    # Headless solve for a target pose (x y z roll pitch yaw)
    jaxik --urdf robot.urdf --ee tool0 --target 0.4 0 0.3 0 1.57 0 --no-view
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from lxml import etree

from jaxik.chain import KinematicChain
from jaxik.config import SolverConfig
from jaxik.errors import KinematicsError
from jaxik.ik import IKSolver
from jaxik.transforms import Pose

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    defaults = SolverConfig()
    parser = argparse.ArgumentParser(
        prog="jaxik",
        description="Forward/inverse kinematics viewer for URDF serial chains.",
    )
    parser.add_argument("--urdf", required=True, help="Path to the URDF file.")
    parser.add_argument("--ee", default=None,
                        help="End-effector link (default: last link in the file).")
    parser.add_argument("--target", type=float, nargs=6, default=None,
                        metavar=("X", "Y", "Z", "ROLL", "PITCH", "YAW"),
                        help="Solve IK for this end-effector pose (m / rad).")
    parser.add_argument("--initial", type=float, nargs="+", default=None, metavar="Q",
                        help="Initial joint values, one per DOF.")
    parser.add_argument("--max-iterations", type=int, default=defaults.max_iterations)
    parser.add_argument("--tolerance", type=float, default=defaults.tolerance)
    parser.add_argument("--damping", type=float, default=defaults.damping)
    parser.add_argument("--no-view", action="store_true",
                        help="Do not open the interactive viewer.")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _print_summary(chain: KinematicChain) -> None:
    q_min, q_max = chain.limits
    print(f"robot        = {chain.description.name}")
    print(f"end-effector = {chain.end_effector}")
    print(f"serial path  = {' -> '.join(chain.serial_path)}")
    print(f"dof          = {chain.dof}")
    for name, lo, hi in zip(chain.joint_names, q_min.tolist(), q_max.tolist()):
        print(f"  {name}: [{lo:g}, {hi:g}]")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = SolverConfig(
            max_iterations=args.max_iterations,
            tolerance=args.tolerance,
            damping=args.damping,
        )
    except ValueError as exc:
        parser.error(str(exc))

    try:
        chain = KinematicChain.from_urdf(args.urdf, args.ee)
        _print_summary(chain)
        solver = IKSolver(config)

        if args.initial is not None:
            chain.forward_kinematics(chain.clamp_to_limits(args.initial))

        target = None
        if args.target is not None:
            target = Pose.from_xyz_rpy(args.target[:3], args.target[3:])
            result = solver.solve(chain, target)
            status = "converged" if result.converged else "NOT converged"
            print(f"ik: {status} after {result.iterations} iterations, residual {result.residual:.3e}")
            for name, value in zip(chain.joint_names, result.q.tolist()):
                print(f"  {name} = {value:.6f}")
    except (OSError, etree.XMLSyntaxError, KinematicsError) as exc:
        logger.error("%s: %s", args.urdf, exc)
        return 1

    if not args.no_view:
        from jaxik.viewer import ChainViewer

        ChainViewer(chain, solver, target=target).show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
