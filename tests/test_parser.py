"""Tests for URDF parser functionality."""

import math
from pathlib import Path

import numpy as np
import pytest

from jaxik import KinematicChain
from jaxik.core import Joint, Link, RobotDescription
from jaxik.errors import StructureError
from jaxik.io import load_urdf, parse_urdf_string

FIXTURES = Path(__file__).parent / "fixtures"


def test_load_arm_urdf():
    """Links and joints keep document order and raw fields."""
    robot = load_urdf(str(FIXTURES / "arm6.urdf"))

    assert isinstance(robot, RobotDescription)
    assert robot.name == "arm6"
    assert robot.link_names == (
        "base_link", "link1", "link2", "link3", "link4", "link5", "link6",
        "tool0", "camera_link", "finger_link",
    )
    # The <joint> inside <transmission> is not a kinematic joint
    assert [joint.name for joint in robot.joints] == [
        "joint1", "joint2", "joint3", "joint4", "joint5", "joint6",
        "tool_joint", "camera_joint", "finger_joint",
    ]
    assert all(isinstance(link, Link) for link in robot.links)


def test_joint_fields():
    robot = load_urdf(str(FIXTURES / "arm6.urdf"))
    joints = {joint.name: joint for joint in robot.joints}

    joint2 = joints["joint2"]
    assert joint2.joint_type == "revolute"
    assert (joint2.parent, joint2.child) == ("link1", "link2")
    assert joint2.xyz == (0.0, 0.05, 0.2)
    assert joint2.axis == (0.0, 1.0, 0.0)
    assert (joint2.lower, joint2.upper) == (-2.0, 2.0)

    # Missing <limit> stays missing; defaulting happens later
    assert joints["joint4"].lower is None
    assert joints["joint4"].upper is None

    assert joints["camera_joint"].rpy == pytest.approx((0.0, 1.5707963267948966, 0.0))
    assert joints["finger_joint"].joint_type == "prismatic"
    assert (joints["finger_joint"].lower, joints["finger_joint"].upper) == (0.0, 0.04)


def test_urdf_defaults():
    """Absent <origin> is identity and absent <axis> is the URDF default x axis."""
    robot = parse_urdf_string("""
        <robot name="defaults">
          <link name="a"/>
          <link name="b"/>
          <joint name="j" type="continuous">
            <parent link="a"/>
            <child link="b"/>
          </joint>
        </robot>
    """)
    (joint,) = robot.joints
    assert joint.axis == (1.0, 0.0, 0.0)
    # Records built by hand use the same default as the parser
    assert joint == Joint(name="j", joint_type="continuous", parent="a", child="b")


def test_limit_with_missing_side():
    """A side left out of <limit> is 0; no <limit> at all leaves both None."""
    robot = parse_urdf_string("""
        <robot name="partial">
          <link name="a"/>
          <link name="b"/>
          <link name="c"/>
          <joint name="lifted" type="revolute">
            <parent link="a"/><child link="b"/>
            <axis xyz="0 0 1"/>
            <limit upper="1.0" effort="10" velocity="1"/>
          </joint>
          <joint name="spinner" type="continuous">
            <parent link="b"/><child link="c"/>
            <limit effort="10" velocity="1"/>
          </joint>
        </robot>
    """)
    lifted, spinner = robot.joints
    assert (lifted.lower, lifted.upper) == (0.0, 1.0)
    assert (spinner.lower, spinner.upper) == (0.0, 0.0)

    q_min, q_max = KinematicChain(robot).limits
    np.testing.assert_array_equal(q_min, [0.0, -math.inf])
    np.testing.assert_array_equal(q_max, [1.0, math.inf])


def test_planar_fixture():
    robot = load_urdf(str(FIXTURES / "planar_2link.urdf"))
    assert robot.link_names == ("base", "upper_arm", "forearm", "tip")
    assert robot.default_end_effector() == "tip"
    assert [joint.is_fixed for joint in robot.joints] == [False, False, True]


def test_missing_file():
    with pytest.raises(OSError):
        load_urdf(str(FIXTURES / "does_not_exist.urdf"))


def test_wrong_root_element():
    with pytest.raises(StructureError, match="robot"):
        parse_urdf_string("<model name='x'/>")


def test_joint_without_child():
    with pytest.raises(StructureError, match="'j'"):
        parse_urdf_string("""
            <robot name="broken">
              <link name="a"/>
              <joint name="j" type="fixed"><parent link="a"/></joint>
            </robot>
        """)


@pytest.mark.parametrize("origin", ['xyz="1 2"', 'xyz="1 two 3"'])
def test_bad_origin(origin):
    with pytest.raises(StructureError, match="xyz"):
        parse_urdf_string(f"""
            <robot name="broken">
              <link name="a"/>
              <link name="b"/>
              <joint name="j" type="fixed">
                <parent link="a"/><child link="b"/><origin {origin}/>
              </joint>
            </robot>
        """)


def test_bad_limit():
    with pytest.raises(StructureError, match="limit"):
        parse_urdf_string("""
            <robot name="broken">
              <link name="a"/>
              <link name="b"/>
              <joint name="j" type="revolute">
                <parent link="a"/><child link="b"/><limit lower="low" upper="1"/>
              </joint>
            </robot>
        """)


def test_empty_robot_has_no_default_end_effector():
    robot = parse_urdf_string("<robot name='empty'/>")
    with pytest.raises(StructureError, match="no links"):
        robot.default_end_effector()
