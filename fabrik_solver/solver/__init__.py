"""
Solver layer
FABRIK forward/backward reaching, the per-chain iteration loop and structure orchestration
"""

from .fabrik_core import (
    forward_pass,
    backward_pass,
    clamp_basebone_direction,
    solve_iteration,
    is_already_solved,
    capture_pose,
    restore_pose,
)
from .solve_chain import solve_chain_for_target
from .solve_structure import solve_structure_for_target

__all__ = [
    'forward_pass',
    'backward_pass',
    'clamp_basebone_direction',
    'solve_iteration',
    'is_already_solved',
    'capture_pose',
    'restore_pose',
    'solve_chain_for_target',
    'solve_structure_for_target',
]
