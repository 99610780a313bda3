"""
Structure solver
Solves every chain once, in index order. Connected chains take their base location and their LOCAL_*
basebone constraint frame from the parent bone as it was left by the parent chain's solve.
"""
import logging
from typing import List, Optional

from ..model.structure import Structure
from ..utils.vector_utils import VectorLike, as_vector

logger = logging.getLogger(__name__)


def solve_structure_for_target(structure: Structure, target: Optional[VectorLike] = None) -> List[float]:
    """
    Solve all chains of a structure

    :param structure: structure to solve (bones are updated in place)
    :param target: target for chains that do not use an embedded target
    :return: solve distance per chain, in chain index order
    """
    structure.validate()
    target = None if target is None else as_vector(target)

    if target is None:
        missing = [index for index, chain in enumerate(structure.chains) if not chain.use_embedded_target]
        if missing:
            raise ValueError(f"No target given for chains without an embedded target: {missing}")

    distances: List[float] = []
    for index, chain in enumerate(structure.chains):
        connection = chain.connection
        if connection is not None:
            parent_bone = structure.chains[connection.parent_chain_index].get_bone(connection.parent_bone_index)
            chain.set_base_location(parent_bone.connection_point_location(connection.connection_point))
            chain.update_basebone_relative_constraints(parent_bone.direction_uv)

        if chain.use_embedded_target:
            distance = chain.solve_for_embedded_target()
        else:
            distance = chain.solve_for_target(target)
        distances.append(distance)

    logger.debug("Structure %r solved, distances %s", structure.name, distances)
    return distances
