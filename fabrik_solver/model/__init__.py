"""
Model layer
Bones, joints, chains and structures - the data the solver repositions

Exports:
- JointType / BallJoint / HingeJoint: per-bone rotational constraints, applied through clamp_direction
- Bone / BoneConnectionPoint: rigid fixed-length segments
- Chain / ChainBuilder / BaseboneConstraintType: kinematic chains and their construction
- Structure / Connection: connected chains solved in index order
"""

from .joint import (
    JointType,
    BallJoint,
    HingeJoint,
    Joint,
    clamp_direction,
    clamp_rotor,
    clamp_hinge,
)
from .bone import Bone, BoneConnectionPoint
from .chain import (
    Chain,
    ChainBuilder,
    BaseboneConstraintType,
    Connection,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MIN_ITERATIONS,
    DEFAULT_SOLVE_DISTANCE_THRESHOLD,
    DEFAULT_MIN_ITERATION_CHANGE,
)
from .structure import Structure

__all__ = [
    'JointType',
    'BallJoint',
    'HingeJoint',
    'Joint',
    'clamp_direction',
    'clamp_rotor',
    'clamp_hinge',
    'Bone',
    'BoneConnectionPoint',
    'Chain',
    'ChainBuilder',
    'BaseboneConstraintType',
    'Connection',
    'DEFAULT_MAX_ITERATIONS',
    'DEFAULT_MIN_ITERATIONS',
    'DEFAULT_SOLVE_DISTANCE_THRESHOLD',
    'DEFAULT_MIN_ITERATION_CHANGE',
    'Structure',
]
