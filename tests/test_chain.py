"""Tests for forward kinematics, the geometric Jacobian and KinematicChain."""

import math
import threading
from pathlib import Path

import jax
import jax.numpy as jnp
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jaxik import KinematicChain
from jaxik.chain import forward_kinematics, forward_kinematics_world, jacobian
from jaxik.core import Joint, Link, RobotDescription
from jaxik.errors import DimensionError, StructureError, UnknownLinkError
from jaxik.transforms import Pose, se3, so3

ARM_URDF = Path(__file__).parent / "fixtures" / "arm6.urdf"


def _random_q(seed, dof, low=-1.0, high=1.0):
    return jax.random.uniform(jax.random.PRNGKey(seed), (dof,), minval=low, maxval=high)


def test_forward_kinematics_all_links(arm_chain):
    """Every link gets a pose, including those off the end-effector path."""
    poses = arm_chain.forward_kinematics(jnp.zeros(arm_chain.dof))

    assert set(poses) == set(arm_chain.link_names)
    assert len(poses) == 10
    for pose in poses.values():
        assert isinstance(pose, Pose)
        assert pose.matrix.shape == (4, 4)


def test_zero_configuration_stacks_offsets(arm_chain):
    poses = arm_chain.forward_kinematics(jnp.zeros(arm_chain.dof))

    np.testing.assert_allclose(poses["base_link"].matrix, jnp.eye(4))
    np.testing.assert_allclose(poses["link3"].position, [0.0, 0.0, 0.7], atol=1e-12)
    np.testing.assert_allclose(poses["tool0"].position, [0.0, 0.0, 1.3], atol=1e-12)
    np.testing.assert_allclose(poses["finger_link"].position, [0.0, 0.0, 1.27], atol=1e-12)


def test_root_pose_is_link_offset():
    description = RobotDescription(
        name="offset",
        links=(Link("base", xyz=(0.0, 0.0, 0.5)), Link("arm", xyz=(0.1, 0.0, 0.0))),
        joints=(Joint("j", "revolute", "base", "arm", xyz=(1.0, 0.0, 0.0), axis=(0.0, 0.0, 1.0)),),
    )
    chain = KinematicChain(description)
    poses = chain.forward_kinematics([math.pi / 2])

    np.testing.assert_allclose(poses["base"].position, [0.0, 0.0, 0.5])
    # Joint frame at (1, 0, 0.5), rotated a quarter turn, then the link offset
    np.testing.assert_allclose(poses["arm"].position, [1.0, 0.1, 0.5], atol=1e-12)


@given(st.integers(min_value=0, max_value=1000))
@settings(max_examples=10, deadline=None)
def test_composition_law(seed):
    """Each link pose is parent pose @ joint origin @ joint motion @ link offset."""
    chain = KinematicChain.from_urdf(str(ARM_URDF))
    robot = chain.robot
    q = _random_q(seed, chain.dof)
    link_world = forward_kinematics_world(robot, q)

    q_full = jnp.zeros(len(robot.link_names)).at[robot.dof_link_indices].set(q)
    parents = np.asarray(robot.parent_indices)
    for i in range(1, len(robot.link_names)):
        expected = (
            link_world[parents[i]]
            @ robot.joint_transforms[i]
            @ se3.joint_motion(robot.joint_axes[i], q_full[i])
            @ robot.link_offsets[i]
        )
        np.testing.assert_allclose(link_world[i], expected, atol=1e-12)


def test_forward_kinematics_is_deterministic(arm_chain):
    q = _random_q(3, arm_chain.dof)
    first = arm_chain.forward_kinematics(q)
    second = arm_chain.forward_kinematics(q)
    for name in arm_chain.link_names:
        np.testing.assert_array_equal(first[name].matrix, second[name].matrix)


@pytest.mark.parametrize(
    "q, position, yaw",
    [
        ((0.0, 0.0), (2.0, 0.0, 0.0), 0.0),
        ((math.pi / 2, 0.0), (0.0, 2.0, 0.0), math.pi / 2),
        ((math.pi / 4, -math.pi / 2), (math.sqrt(2.0), 0.0, 0.0), -math.pi / 4),
    ],
)
def test_planar_known_values(planar_chain, q, position, yaw):
    tip = planar_chain.end_effector_pose(q)
    np.testing.assert_allclose(tip.position, position, atol=1e-12)
    np.testing.assert_allclose(tip.rpy, [0.0, 0.0, yaw], atol=1e-12)


def test_prismatic_finger(arm_chain):
    q = _random_q(5, arm_chain.dof).at[-1].set(0.03)
    poses = arm_chain.forward_kinematics(q)

    relative = poses["link6"].inverse() @ poses["finger_link"]
    assert relative.allclose(Pose.from_xyz_rpy([0.0, 0.03, 0.02]))


def test_fixed_camera_follows_link3(arm_chain):
    expected = Pose.from_xyz_rpy([0.05, 0.0, 0.1], [0.0, math.pi / 2, 0.0])
    for seed in range(3):
        poses = arm_chain.forward_kinematics(_random_q(seed, arm_chain.dof))
        assert (poses["link3"].inverse() @ poses["camera_link"]).allclose(expected)


def test_wrong_length_leaves_cache_untouched(arm_chain):
    q = _random_q(1, arm_chain.dof)
    arm_chain.forward_kinematics(q)

    with pytest.raises(DimensionError, match="length 7, got 3"):
        arm_chain.forward_kinematics([0.0, 0.0, 0.0])
    with pytest.raises(DimensionError):
        arm_chain.set_joint_positions(jnp.zeros(8))

    np.testing.assert_array_equal(arm_chain.joint_positions, q)


def test_cached_configuration(arm_chain):
    np.testing.assert_array_equal(arm_chain.joint_positions, jnp.zeros(7))

    q = _random_q(2, arm_chain.dof)
    pose = arm_chain.end_effector_pose(q)
    np.testing.assert_array_equal(arm_chain.joint_positions, q)
    np.testing.assert_array_equal(arm_chain.link_poses()["tool0"].matrix, pose.matrix)


def test_default_end_effector(arm_urdf, planar_chain):
    assert KinematicChain.from_urdf(arm_urdf).end_effector == "finger_link"
    assert planar_chain.end_effector == "tip"


def test_unknown_end_effector(arm_urdf):
    with pytest.raises(UnknownLinkError, match="Link 'gripper' not found") as excinfo:
        KinematicChain.from_urdf(arm_urdf, end_effector="gripper")
    assert isinstance(excinfo.value, StructureError)


def test_serial_path(arm_chain):
    assert arm_chain.serial_path == [
        "base_link", "link1", "link2", "link3", "link4", "link5", "link6", "tool0",
    ]
    assert arm_chain.path_joint_names == ["joint1", "joint2", "joint3", "joint4", "joint5", "joint6"]
    assert arm_chain.path_dof == 6
    assert arm_chain.dof == 7


def test_clamp_to_limits(arm_chain):
    q = arm_chain.clamp_to_limits(jnp.full(7, 10.0))
    np.testing.assert_allclose(q, [3.1, 2.0, 2.5, math.pi, 2.0, 10.0, 0.04])
    # Clamping never touches the cached configuration
    np.testing.assert_array_equal(arm_chain.joint_positions, jnp.zeros(7))


@pytest.mark.parametrize("end_effector", ["tool0", "finger_link", "camera_link"])
def test_jacobian_matches_finite_differences(arm_urdf, end_effector):
    chain = KinematicChain.from_urdf(arm_urdf, end_effector=end_effector)
    robot, index = chain.robot, chain.end_effector_index
    q = _random_q(7, chain.dof).at[-1].set(0.02)
    J = chain.jacobian(q)
    assert J.shape == (6, 7)

    h = 1e-6
    numeric = []
    for k in range(chain.dof):
        T_plus = forward_kinematics_world(robot, q.at[k].add(h))[index]
        T_minus = forward_kinematics_world(robot, q.at[k].add(-h))[index]
        linear = (se3.get_position(T_plus) - se3.get_position(T_minus)) / (2 * h)
        angular = so3.log(se3.get_rotation(T_plus) @ se3.get_rotation(T_minus).T) / (2 * h)
        numeric.append(jnp.concatenate([linear, angular]))

    np.testing.assert_allclose(J, jnp.stack(numeric, axis=1), atol=1e-6)


def test_off_path_columns_are_zero(arm_chain):
    q = _random_q(11, arm_chain.dof)
    J = arm_chain.jacobian(q)
    np.testing.assert_array_equal(J[:, -1], jnp.zeros(6))

    J_camera = jacobian(arm_chain.robot, q, "camera_link")
    np.testing.assert_array_equal(J_camera[:, 3:], jnp.zeros((6, 4)))
    assert bool(jnp.any(J_camera[:, :3] != 0.0))


def test_jacobian_unknown_link(arm_chain):
    with pytest.raises(UnknownLinkError, match="Link 'nonexistent_link' not found"):
        jacobian(arm_chain.robot, jnp.zeros(arm_chain.dof), "nonexistent_link")


def test_forward_kinematics_jit(arm_chain):
    q = _random_q(4, arm_chain.dof)
    jitted = jax.jit(forward_kinematics_world)(arm_chain.robot, q)
    np.testing.assert_allclose(jitted, forward_kinematics_world(arm_chain.robot, q), atol=1e-12)

    poses = forward_kinematics(arm_chain.robot, q)
    np.testing.assert_allclose(poses["tool0"].matrix, jitted[arm_chain.end_effector_index], atol=1e-12)


def test_zero_dof_chain():
    description = RobotDescription(
        name="rigid",
        links=(Link("base"), Link("flange")),
        joints=(Joint("weld", "fixed", "base", "flange", xyz=(0.0, 0.0, 0.3)),),
    )
    chain = KinematicChain(description)
    assert chain.dof == 0
    assert chain.path_dof == 0

    poses = chain.forward_kinematics([])
    np.testing.assert_allclose(poses["flange"].position, [0.0, 0.0, 0.3])
    assert chain.jacobian([]).shape == (6, 0)


def test_single_link_chain():
    chain = KinematicChain(RobotDescription(name="one", links=(Link("base"),), joints=()))
    assert chain.serial_path == ["base"]
    assert chain.forward_kinematics([])["base"].allclose(Pose.identity())


def test_lock_is_reentrant(arm_chain):
    q = _random_q(6, arm_chain.dof)
    with arm_chain.locked():
        with arm_chain.locked():
            arm_chain.forward_kinematics(q)
    np.testing.assert_array_equal(arm_chain.joint_positions, q)


def test_lock_blocks_other_threads(arm_chain):
    q = _random_q(8, arm_chain.dof)
    started = threading.Event()

    def writer():
        started.set()
        arm_chain.set_joint_positions(q)

    with arm_chain.locked():
        thread = threading.Thread(target=writer)
        thread.start()
        started.wait(timeout=5.0)
        thread.join(timeout=0.2)
        # The writer cannot finish while we hold the lock
        assert thread.is_alive()
        np.testing.assert_array_equal(arm_chain.joint_positions, jnp.zeros(7))

    thread.join(timeout=5.0)
    np.testing.assert_array_equal(arm_chain.joint_positions, q)
