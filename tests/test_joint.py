import numpy as np
import pytest

from fabrik_solver import ConfigurationError
from fabrik_solver.model.joint import JointType, BallJoint, HingeJoint, clamp_direction
from fabrik_solver.utils.vector_utils import angle_between_degs, signed_angle_degs, normalize

X = np.array([1.0, 0.0, 0.0])
Y = np.array([0.0, 1.0, 0.0])
Z = np.array([0.0, 0.0, 1.0])
COS30, SIN30 = np.cos(np.radians(30.0)), np.sin(np.radians(30.0))


def test_ball_joint_validation():
    assert not BallJoint().is_constrained
    assert BallJoint(45.0).is_constrained
    with pytest.raises(ConfigurationError):
        BallJoint(-1.0)
    with pytest.raises(ConfigurationError):
        BallJoint(180.5)
    joint = BallJoint(30.0)
    with pytest.raises(ConfigurationError):
        joint.set_rotor_constraint_degs(200.0)
    assert joint.rotor_constraint_degs == 30.0


def test_hinge_joint_validation():
    with pytest.raises(ConfigurationError):
        HingeJoint(JointType.GLOBAL_HINGE, Z, normalize([1.0, 0.0, 0.5]))
    with pytest.raises(ConfigurationError):
        HingeJoint(JointType.GLOBAL_HINGE, [0.0, 0.0, 0.0], X)
    with pytest.raises(ConfigurationError):
        HingeJoint(JointType.BALL, Z, X)
    with pytest.raises(ConfigurationError):
        HingeJoint(JointType.LOCAL_HINGE, Z, X, clockwise_constraint_degs=190.0)


def test_hinge_joint_normalizes_axes():
    joint = HingeJoint(JointType.LOCAL_HINGE, [0.0, 0.0, 2.0], [3.0, 0.0, 0.0], 90.0, 45.0)
    np.testing.assert_allclose(joint.rotation_axis, Z)
    np.testing.assert_allclose(joint.reference_axis, X)
    assert joint.type == JointType.LOCAL_HINGE
    assert joint.is_constrained


def test_freely_rotating_hinge():
    joint = HingeJoint.freely_rotating(JointType.GLOBAL_HINGE, [0.0, 1.0, 0.0])
    assert not joint.is_constrained
    assert abs(np.dot(joint.rotation_axis, joint.reference_axis)) < 1e-9


def test_copy_is_independent():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, 10.0, 20.0)
    copy = joint.copy()
    copy.set_constraint_degs(90.0, 90.0)
    copy.rotation_axis[0] = 5.0
    assert joint.clockwise_constraint_degs == 10.0
    np.testing.assert_allclose(joint.rotation_axis, Z)


def test_ball_clamp_inside_cone_unchanged():
    candidate = normalize([1.0, 0.2, 0.0])
    np.testing.assert_allclose(clamp_direction(BallJoint(45.0), candidate, X), candidate)


def test_ball_clamp_outside_cone():
    clamped = clamp_direction(BallJoint(45.0), Y, X)
    np.testing.assert_allclose(clamped, normalize([1.0, 1.0, 0.0]), atol=1e-12)


def test_ball_clamp_anti_parallel_is_deterministic():
    first = clamp_direction(BallJoint(30.0), -X, X)
    second = clamp_direction(BallJoint(30.0), -X, X)
    assert angle_between_degs(X, first) == pytest.approx(30.0)
    np.testing.assert_allclose(first, second)


def test_unconstrained_ball_returns_candidate():
    np.testing.assert_allclose(clamp_direction(BallJoint(), -X, X), -X)


def test_global_hinge_clamps_to_clockwise_bound():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, clockwise_constraint_degs=30.0, anticlockwise_constraint_degs=60.0)
    # +90 about Z exceeds the 30 degree clockwise limit
    np.testing.assert_allclose(clamp_direction(joint, Y, X), [COS30, SIN30, 0.0], atol=1e-12)


def test_global_hinge_clamps_to_anticlockwise_bound():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, clockwise_constraint_degs=30.0, anticlockwise_constraint_degs=60.0)
    np.testing.assert_allclose(clamp_direction(joint, -Y, X), [SIN30, -COS30, 0.0], atol=1e-12)


def test_global_hinge_projects_within_limits():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, clockwise_constraint_degs=30.0, anticlockwise_constraint_degs=60.0)
    candidate = normalize([1.0, 0.1, 5.0])
    clamped = clamp_direction(joint, candidate, Y)
    np.testing.assert_allclose(clamped, normalize([1.0, 0.1, 0.0]), atol=1e-12)


def test_hinge_projection_is_clamped_after_leaving_plane():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, 30.0, 30.0)
    clamped = clamp_direction(joint, normalize([1.0, 1.0, 1.0]), X)
    assert abs(np.dot(clamped, Z)) < 1e-12
    assert signed_angle_degs(X, clamped, Z) == pytest.approx(30.0)


def test_hinge_candidate_parallel_to_axis_falls_back_to_reference():
    joint = HingeJoint(JointType.GLOBAL_HINGE, Z, X, 30.0, 30.0)
    np.testing.assert_allclose(clamp_direction(joint, Z, Y), X)


def test_unconstrained_hinge_only_projects():
    joint = HingeJoint.freely_rotating(JointType.GLOBAL_HINGE, Z)
    np.testing.assert_allclose(clamp_direction(joint, normalize([-1.0, -1.0, 1.0]), X),
                               normalize([-1.0, -1.0, 0.0]), atol=1e-12)


def test_local_hinge_uses_previous_bone_frame():
    # local Y / local forward become world Y / world X for a previous bone pointing along +X
    joint = HingeJoint(JointType.LOCAL_HINGE, Y, Z, clockwise_constraint_degs=45.0, anticlockwise_constraint_degs=45.0)
    clamped = clamp_direction(joint, Z, X)
    np.testing.assert_allclose(clamped, normalize([1.0, 0.0, 1.0]), atol=1e-12)


def test_local_hinge_follows_reference_direction():
    joint = HingeJoint(JointType.LOCAL_HINGE, Y, Z, 10.0, 10.0)
    # previous bone along +Z: the local frame is the identity
    clamped = clamp_direction(joint, X, Z)
    assert angle_between_degs(Z, clamped) == pytest.approx(10.0)
    assert abs(np.dot(clamped, Y)) < 1e-12
