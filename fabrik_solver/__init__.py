"""
fabrik_solver
Joint-constrained 3D inverse kinematics with FABRIK (Forward And Backward Reaching Inverse Kinematics)
"""

from .errors import ConfigurationError
from .model import (
    JointType,
    BallJoint,
    HingeJoint,
    clamp_direction,
    Bone,
    BoneConnectionPoint,
    Chain,
    ChainBuilder,
    BaseboneConstraintType,
    Connection,
    Structure,
)
from .solver import solve_chain_for_target, solve_structure_for_target, is_already_solved

__version__ = '0.1.0'

__all__ = [
    'ConfigurationError',
    'JointType',
    'BallJoint',
    'HingeJoint',
    'clamp_direction',
    'Bone',
    'BoneConnectionPoint',
    'Chain',
    'ChainBuilder',
    'BaseboneConstraintType',
    'Connection',
    'Structure',
    'solve_chain_for_target',
    'solve_structure_for_target',
    'is_already_solved',
]
