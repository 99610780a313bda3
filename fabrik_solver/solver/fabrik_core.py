"""
FABRIK core passes
Forward reaching (tip -> base, unconstrained), backward reaching (base -> tip, constrained), one full iteration
and the early-exit predicate
"""
import numpy as np
from typing import List, Optional, Tuple

from ..model.chain import Chain, BaseboneConstraintType
from ..model.joint import clamp_direction, clamp_rotor, clamp_hinge
from ..utils.vector_utils import DEGENERATE_EPSILON

# Component-wise tolerance when comparing a new target/base with the memoized one
SAME_LOCATION_TOLERANCE = 1e-3

Pose = List[Tuple[np.ndarray, np.ndarray]]


def _unit_or(v: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm < DEGENERATE_EPSILON:
        return fallback.copy()
    return v / norm


def forward_pass(chain: Chain, target: np.ndarray):
    """
    Forward reaching: snap the end effector to the target and drag every bone after it, tip to base.
    No joint constraints are applied in this pass.

    :param chain: chain to update in place
    :param target: target location (Vec3)
    """
    bones = chain.bones
    for i in range(len(bones) - 1, -1, -1):
        bone = bones[i]
        end = target if i == len(bones) - 1 else bones[i + 1].start_location
        # direction from the new end back to where the start currently is
        outer_to_inner = _unit_or(bone.start_location - end, -bone.direction_uv)
        bone.set_end_location(end)
        bone.set_start_location(end + outer_to_inner * bone.length)


def clamp_basebone_direction(chain: Chain, candidate_uv: np.ndarray) -> np.ndarray:
    """
    Apply the chain's basebone constraint to a candidate base bone direction

    LOCAL_* constraints use the relative axes resolved by Chain.update_basebone_relative_constraints.
    """
    constraint_type = chain.basebone_constraint_type
    joint = chain.base_bone.joint

    if constraint_type == BaseboneConstraintType.NONE:
        return candidate_uv

    if constraint_type.is_rotor:
        if not joint.is_constrained:
            return candidate_uv
        if constraint_type == BaseboneConstraintType.GLOBAL_ROTOR:
            axis = chain.basebone_constraint_uv
        else:
            axis = chain.basebone_relative_constraint_uv
        return clamp_rotor(candidate_uv, axis, joint.rotor_constraint_degs)

    if constraint_type == BaseboneConstraintType.GLOBAL_HINGE:
        rotation_axis = joint.rotation_axis
        reference_axis = joint.reference_axis
    else:
        rotation_axis = chain.basebone_relative_constraint_uv
        reference_axis = chain.basebone_relative_reference_constraint_uv
    return clamp_hinge(candidate_uv, rotation_axis, reference_axis,
                       joint.clockwise_constraint_degs, joint.anticlockwise_constraint_degs,
                       joint.is_constrained)


def backward_pass(chain: Chain):
    """
    Backward reaching: re-anchor the base and walk base to tip, clamping each bone's direction.
    The base bone is clamped by the basebone constraint, every other bone by its own joint relative
    to the previous bone's new direction.

    :param chain: chain to update in place
    """
    bones = chain.bones
    for i, bone in enumerate(bones):
        if i == 0:
            start = chain.base_location if chain.fixed_base_mode else bone.start_location.copy()
            candidate = _unit_or(bone.end_location - start, bone.direction_uv)
            direction = clamp_basebone_direction(chain, candidate)
        else:
            previous = bones[i - 1]
            start = previous.end_location.copy()
            candidate = _unit_or(bone.end_location - start, bone.direction_uv)
            direction = clamp_direction(bone.joint, candidate, previous.direction_uv)

        bone.set_start_location(start)
        bone.set_end_location(start + direction * bone.length)


def solve_iteration(chain: Chain, target: np.ndarray) -> float:
    """
    One forward + backward reaching iteration

    :return: distance between the end effector and the target afterwards
    """
    forward_pass(chain, target)
    backward_pass(chain)
    return float(np.linalg.norm(chain.end_effector_bone.end_location - target))


def is_already_solved(last_target: Optional[np.ndarray],
                      current_solve_distance: float,
                      new_target: np.ndarray,
                      threshold: float,
                      last_base: Optional[np.ndarray] = None,
                      base: Optional[np.ndarray] = None) -> bool:
    """
    Whether a new solve would just reproduce the last one

    :param last_target: target of the last solve, None if never solved
    :param current_solve_distance: distance reached by the last solve
    :param new_target: target about to be solved for
    :param threshold: solve distance threshold
    :param last_base: base location of the last solve (compared only when base is given)
    :param base: current base location
    :return: True when the target (and base) are unchanged within SAME_LOCATION_TOLERANCE and the last solve converged
    """
    if last_target is None:
        return False
    if np.max(np.abs(np.asarray(new_target) - last_target)) > SAME_LOCATION_TOLERANCE:
        return False
    if base is not None:
        if last_base is None:
            return False
        if np.max(np.abs(np.asarray(base) - last_base)) > SAME_LOCATION_TOLERANCE:
            return False
    return current_solve_distance <= threshold


def capture_pose(chain: Chain) -> Pose:
    return [(bone.start_location.copy(), bone.end_location.copy()) for bone in chain.bones]


def restore_pose(chain: Chain, pose: Pose):
    for bone, (start, end) in zip(chain.bones, pose):
        bone.set_start_location(start)
        bone.set_end_location(end)
