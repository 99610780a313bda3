import numpy as np
import pytest

from fabrik_solver import (
    Structure,
    ChainBuilder,
    BaseboneConstraintType,
    BoneConnectionPoint,
    Connection,
    ConfigurationError,
)


def single_bone_chain(direction=(1, 0, 0), length=10.0, base=(0, 0, 0)):
    return ChainBuilder().add_base_bone(base, direction, length).build()


def pinned_chain():
    return (ChainBuilder()
            .add_base_bone([0, 0, 0], [1, 0, 0], 10.0)
            .with_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, [1, 0, 0], 0.0)
            .named('parent')
            .build())


def test_connect_translates_child_onto_connection_point(straight_chain):
    structure = Structure('arm')
    assert structure.add_chain(straight_chain(bone_count=2)) == 0
    child = single_bone_chain(direction=(0, 1, 0), length=5.0)
    assert structure.connect_chain(child, 0, 1) == 1

    np.testing.assert_allclose(child.base_bone.start_location, [20.0, 0.0, 0.0])
    np.testing.assert_allclose(child.base_bone.end_location, [20.0, 5.0, 0.0])
    np.testing.assert_allclose(child.base_location, [20.0, 0.0, 0.0])
    assert child.fixed_base_mode
    assert structure.connections == {1: Connection(0, 1, BoneConnectionPoint.END)}
    assert structure.chain_count == 2


def test_connect_to_bone_start(straight_chain):
    structure = Structure()
    structure.add_chain(straight_chain(bone_count=2))
    child = single_bone_chain(direction=(0, 0, 1), length=1.0)
    structure.connect_chain(child, 0, 1, BoneConnectionPoint.START)
    np.testing.assert_allclose(child.base_bone.start_location, [10.0, 0.0, 0.0])


def test_connect_validates_indices(straight_chain):
    structure = Structure()
    structure.add_chain(straight_chain(bone_count=2))
    child = single_bone_chain()
    with pytest.raises(ConfigurationError):
        structure.connect_chain(child, 1, 0)
    with pytest.raises(ConfigurationError):
        structure.connect_chain(child, 0, 2)
    with pytest.raises(ConfigurationError):
        structure.connect_chain(child, -1, 0)
    # nothing was changed by the rejected calls
    np.testing.assert_allclose(child.base_bone.start_location, [0.0, 0.0, 0.0])
    assert child.connection is None
    assert structure.chain_count == 1


def test_connected_chain_must_keep_fixed_base(straight_chain):
    structure = Structure()
    structure.add_chain(straight_chain(bone_count=1))
    child = single_bone_chain()
    structure.connect_chain(child, 0, 0)
    with pytest.raises(ConfigurationError):
        child.set_fixed_base_mode(False)
    with pytest.raises(ConfigurationError):
        structure.set_fixed_base_mode(False)


def test_set_fixed_base_mode_for_all_chains():
    structure = Structure()
    structure.add_chain(single_bone_chain())
    structure.add_chain(single_bone_chain(base=(0, 0, 5)))
    structure.set_fixed_base_mode(False)
    assert not any(chain.fixed_base_mode for chain in structure.chains)


def test_builder_connection_is_applied_by_add_chain(straight_chain):
    structure = Structure()
    structure.add_chain(straight_chain(bone_count=2))
    child = ChainBuilder().add_base_bone([0, 0, 0], [0, 1, 0], 3.0).connected_to(0, 0).build()
    index = structure.add_chain(child)
    assert index == 1
    np.testing.assert_allclose(child.base_bone.start_location, [10.0, 0.0, 0.0])
    assert structure.get_chain(1).connection == Connection(0, 0, BoneConnectionPoint.END)


def test_structure_propagates_parent_pose_to_child(check_lengths):
    structure = Structure()
    structure.add_chain(single_bone_chain())
    child = single_bone_chain(direction=(1, 0, 0), length=5.0)
    structure.connect_chain(child, 0, 0)

    distances = structure.solve_for_target([0.0, 10.0, 0.0])
    parent = structure.get_chain(0)

    assert len(distances) == 2
    assert distances[0] == pytest.approx(0.0, abs=1e-9)
    np.testing.assert_allclose(parent.end_effector_location, [0.0, 10.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(child.base_bone.start_location, parent.end_effector_location)
    for chain in structure.chains:
        check_lengths(chain)


def test_local_rotor_basebone_follows_parent_direction():
    structure = Structure()
    structure.add_chain(pinned_chain())
    child = (ChainBuilder()
             .add_base_bone([0, 0, 0], [0, 1, 0], 5.0)
             .with_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, [0, 0, 1], 0.0)
             .connected_to(0, 0)
             .build())
    structure.add_chain(child)

    structure.solve_for_target([10.0, 10.0, 0.0])
    # the local forward axis is the parent bone's direction
    np.testing.assert_allclose(child.basebone_relative_constraint_uv, [1.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(child.base_bone.direction_uv, [1.0, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(child.end_effector_location, [15.0, 0.0, 0.0], atol=1e-9)


def test_local_hinge_basebone_uses_parent_frame():
    structure = Structure()
    structure.add_chain(pinned_chain())
    child = (ChainBuilder()
             .add_base_bone([0, 0, 0], [1, 0, 0], 5.0)
             .with_hinge_basebone_constraint(BaseboneConstraintType.LOCAL_HINGE, [0, 1, 0], 30.0, 30.0, [0, 0, 1])
             .connected_to(0, 0)
             .build())
    structure.add_chain(child)

    structure.solve_for_target([10.0, 0.0, 50.0])
    np.testing.assert_allclose(child.basebone_relative_constraint_uv, [0.0, 1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(child.basebone_relative_reference_constraint_uv, [1.0, 0.0, 0.0], atol=1e-12)
    cos30, sin30 = np.cos(np.radians(30.0)), np.sin(np.radians(30.0))
    np.testing.assert_allclose(child.base_bone.direction_uv, [cos30, 0.0, sin30], atol=1e-9)


def test_embedded_targets_per_chain():
    structure = Structure()
    structure.add_chain(single_bone_chain())
    structure.add_chain(
        ChainBuilder().add_base_bone([0, 0, 50], [1, 0, 0], 10.0).with_embedded_target([6.0, 8.0, 50.0]).build()
    )
    distances = structure.solve_for_target([0.0, 0.0, 10.0])
    assert distances == pytest.approx([0.0, 0.0], abs=1e-9)
    np.testing.assert_allclose(structure.get_chain(1).end_effector_location, [6.0, 8.0, 50.0], atol=1e-9)


def test_missing_structure_target_fails_before_mutation():
    structure = Structure()
    structure.add_chain(
        ChainBuilder().add_base_bone([0, 0, 0], [1, 0, 0], 10.0).with_embedded_target([0.0, 10.0, 0.0]).build()
    )
    structure.add_chain(single_bone_chain(base=(0, 0, 5)))
    with pytest.raises(ValueError):
        structure.solve_for_target()
    np.testing.assert_allclose(structure.get_chain(0).end_effector_location, [10.0, 0.0, 0.0])


def test_remove_chain_reindexes_connections():
    structure = Structure()
    structure.add_chain(single_bone_chain())
    structure.add_chain(single_bone_chain(base=(0, 0, 5)))
    structure.connect_chain(single_bone_chain(direction=(0, 1, 0)), 1, 0)

    with pytest.raises(ConfigurationError):
        structure.remove_chain(1)

    structure.remove_chain(0)
    assert structure.chain_count == 2
    assert structure.connections == {1: Connection(0, 0, BoneConnectionPoint.END)}
    structure.validate()


def test_unconnected_local_basebone_rejected_on_add():
    chain = ChainBuilder().add_base_bone([0, 0, 0], [1, 0, 0], 5.0).build()
    chain.set_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, [0, 0, 1], 20.0)
    structure = Structure()
    with pytest.raises(ConfigurationError):
        structure.add_chain(chain)
    assert structure.chain_count == 0

    chain.set_hinge_basebone_constraint(BaseboneConstraintType.LOCAL_HINGE, [0, 1, 0])
    with pytest.raises(ConfigurationError):
        structure.add_chain(chain)
    assert structure.chain_count == 0
