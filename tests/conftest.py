"""Shared fixtures: URDF paths and ready-made chains."""

from pathlib import Path

import hypothesis
import pytest

from jaxik import KinematicChain

FIXTURES = Path(__file__).parent / "fixtures"

# Use hypothesis profile for CI
hypothesis.settings.register_profile("ci", max_examples=10, deadline=None)


@pytest.fixture
def planar_urdf() -> str:
    return str(FIXTURES / "planar_2link.urdf")


@pytest.fixture
def arm_urdf() -> str:
    return str(FIXTURES / "arm6.urdf")


@pytest.fixture
def planar_chain(planar_urdf) -> KinematicChain:
    return KinematicChain.from_urdf(planar_urdf)


@pytest.fixture
def arm_chain(arm_urdf) -> KinematicChain:
    """arm6 driven at the tool flange; the finger joint is off the IK path."""
    return KinematicChain.from_urdf(arm_urdf, end_effector="tool0")
