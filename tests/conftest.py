import numpy as np
import pytest

from fabrik_solver import ChainBuilder, BaseboneConstraintType, JointType


def build_straight_chain(bone_count=3, length=10.0, direction=(1.0, 0.0, 0.0), base=(0.0, 0.0, 0.0), **settings):
    builder = ChainBuilder().add_base_bone(base, direction, length)
    for _ in range(bone_count - 1):
        builder.add_consecutive_bone(direction, length)
    if settings:
        builder.with_solver_settings(**settings)
    return builder.build()


def build_pinned_base_chain(length=10.0):
    """Base bone locked along +X by a zero-angle global rotor"""
    return (ChainBuilder()
            .add_base_bone([0, 0, 0], [1, 0, 0], length)
            .with_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, [1, 0, 0], 0.0))


def build_global_hinge_chain(clockwise_degs=180.0, anticlockwise_degs=180.0):
    """Free base bone plus two bones hinged about world Z"""
    return (ChainBuilder()
            .add_base_bone([0, 0, 0], [1, 0, 0], 10.0)
            .add_consecutive_hinged_bone([1, 0, 0], 10.0, JointType.GLOBAL_HINGE, [0, 0, 1],
                                         clockwise_degs, anticlockwise_degs, [1, 0, 0])
            .add_consecutive_hinged_bone([1, 0, 0], 10.0, JointType.GLOBAL_HINGE, [0, 0, 1],
                                         clockwise_degs, anticlockwise_degs, [1, 0, 0])
            .build())


@pytest.fixture
def straight_chain():
    return build_straight_chain


@pytest.fixture
def pinned_base_chain():
    return build_pinned_base_chain


@pytest.fixture
def global_hinge_chain():
    return build_global_hinge_chain


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def assert_bone_lengths_preserved(chain, tolerance=1e-4):
    for bone in chain.bones:
        assert abs(bone.live_length - bone.length) <= tolerance


@pytest.fixture
def check_lengths():
    return assert_bone_lengths_preserved
