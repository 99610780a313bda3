"""
Chain solver
Iterates forward/backward reaching until the end effector is close enough, progress stalls, or the
iteration cap is hit. The best pose seen is the one left in the chain.
"""
import logging
import numpy as np

from ..model.chain import Chain
from ..utils.vector_utils import VectorLike, as_vector
from .fabrik_core import solve_iteration, is_already_solved, capture_pose, restore_pose

logger = logging.getLogger(__name__)


def solve_chain_for_target(chain: Chain, target: VectorLike) -> float:
    """
    Solve a chain for a target location

    :param chain: chain to solve (bones are updated in place)
    :param target: target location (Vec3)
    :return: best distance between the end effector and the target
    """
    chain.validate()
    target = as_vector(target)

    base = chain.base_location if chain.fixed_base_mode else chain.base_bone.start_location
    live_distance = float(np.linalg.norm(chain.end_effector_location - target))
    if (live_distance <= chain.solve_distance_threshold
            and chain.last_constraint_state == chain.constraint_state()
            and is_already_solved(chain.last_target_location, chain.current_solve_distance, target,
                                  chain.solve_distance_threshold, chain.last_base_location, base)):
        logger.debug("Chain %r already solved for %s (distance %.6f)",
                     chain.name, target.tolist(), chain.current_solve_distance)
        return chain.current_solve_distance

    best_distance = float('inf')
    best_pose = capture_pose(chain)
    previous_distance = float('inf')
    iterations = 0

    for iteration in range(1, chain.max_iterations + 1):
        iterations = iteration
        distance = solve_iteration(chain, target)

        if distance < best_distance:
            best_distance = distance
            best_pose = capture_pose(chain)
            if distance <= chain.solve_distance_threshold and iteration >= chain.min_iterations:
                break
        elif iteration >= chain.min_iterations and abs(distance - previous_distance) < chain.min_iteration_change:
            # no improvement and barely moving, further iterations will not help
            break

        previous_distance = distance

    restore_pose(chain, best_pose)

    chain.current_solve_distance = best_distance
    chain.last_constraint_state = chain.constraint_state()
    chain.last_target_location = target.copy()
    chain.last_base_location = np.array(
        chain.base_location if chain.fixed_base_mode else chain.base_bone.start_location, dtype=np.float64
    )

    logger.debug("Chain %r solved for %s in %d iterations, distance %.6f",
                 chain.name, target.tolist(), iterations, best_distance)
    return best_distance
