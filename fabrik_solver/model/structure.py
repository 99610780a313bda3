"""
Structure - chains held in a flat, index-addressed list plus the connections between them.
A connection names a point on a bone of an earlier chain; it is resolved by lookup on every solve.
"""
import logging
from typing import Dict, List, Optional

from ..errors import ConfigurationError
from ..utils.vector_utils import VectorLike
from .bone import BoneConnectionPoint
from .chain import Chain, Connection

logger = logging.getLogger(__name__)


class Structure:
    """
    Ordered collection of chains. Chains are solved in index order, so a connection may only reference
    a chain with a lower index than the connected chain.
    """

    def __init__(self, name: str = ''):
        self.name: str = name
        self.chains: List[Chain] = []

    @property
    def chain_count(self) -> int:
        return len(self.chains)

    @property
    def connections(self) -> Dict[int, Connection]:
        """Child chain index -> Connection, for every connected chain"""
        return {index: chain.connection for index, chain in enumerate(self.chains) if chain.connection is not None}

    def get_chain(self, index: int) -> Chain:
        return self.chains[index]

    def add_chain(self, chain: Chain) -> int:
        """
        Append a chain. A chain that already carries a connection (e.g. from ChainBuilder.connected_to) is
        connected through connect_chain; any other chain must be solvable on its own.

        :raises ConfigurationError: if an unconnected chain is empty or uses a LOCAL_* basebone constraint

        :return: index of the chain in this structure
        """
        if chain.connection is not None:
            connection = chain.connection
            return self.connect_chain(chain, connection.parent_chain_index, connection.parent_bone_index,
                                      connection.connection_point)
        chain.validate()
        self.chains.append(chain)
        logger.debug("Added chain %r as index %d", chain.name, len(self.chains) - 1)
        return len(self.chains) - 1

    def connect_chain(self, chain: Chain, parent_chain_index: int, parent_bone_index: int,
                      connection_point: BoneConnectionPoint = BoneConnectionPoint.END,
                      translate: bool = True) -> int:
        """
        Connect a chain to a bone of a chain already in this structure

        The given chain is expected to be defined relative to the origin: it is translated so that its origin lies
        on the connection point, and it is forced into fixed base mode.

        :param chain: chain to connect (must not be in the structure yet)
        :param parent_chain_index: index of the chain to connect to
        :param parent_bone_index: index of the bone in that chain
        :param connection_point: START or END of the parent bone
        :param translate: False when the chain's bones are already in world space (restored snapshots)
        :return: index of the connected chain
        """
        if not 0 <= parent_chain_index < len(self.chains):
            raise ConfigurationError(
                f"Cannot connect to chain {parent_chain_index} - the structure has {len(self.chains)} chains "
                f"(chains are zero indexed)"
            )
        parent_chain = self.chains[parent_chain_index]
        if not 0 <= parent_bone_index < parent_chain.bone_count:
            raise ConfigurationError(
                f"Cannot connect to bone {parent_bone_index} of chain {parent_chain_index} - it has "
                f"{parent_chain.bone_count} bones (bones are zero indexed)"
            )
        if not chain.bones:
            raise ConfigurationError("Cannot connect a chain without bones")

        parent_bone = parent_chain.get_bone(parent_bone_index)
        connection_location = parent_bone.connection_point_location(connection_point)

        chain.fixed_base_mode = True
        chain.connection = Connection(parent_chain_index, parent_bone_index, connection_point)
        if translate:
            chain.translate(connection_location)
        chain.set_base_location(connection_location)
        chain.update_basebone_relative_constraints(parent_bone.direction_uv)
        chain.reset_solve_state()

        self.chains.append(chain)
        index = len(self.chains) - 1
        logger.debug("Connected chain %r (index %d) to chain %d bone %d (%s)",
                     chain.name, index, parent_chain_index, parent_bone_index, connection_point.name)
        return index

    def remove_chain(self, index: int) -> Chain:
        """
        Remove a chain that no other chain is connected to. Connections of later chains are re-indexed.
        """
        if not 0 <= index < len(self.chains):
            raise IndexError(f"No chain {index} in a structure of {len(self.chains)} chains")
        dependants = [child for child, connection in self.connections.items()
                      if connection.parent_chain_index == index]
        if dependants:
            raise ConfigurationError(f"Cannot remove chain {index}: chains {dependants} are connected to it")

        removed = self.chains.pop(index)
        for chain in self.chains:
            connection = chain.connection
            if connection is not None and connection.parent_chain_index > index:
                chain.connection = connection._replace(parent_chain_index=connection.parent_chain_index - 1)
        return removed

    def set_fixed_base_mode(self, fixed: bool):
        """Set the fixed base mode of every chain"""
        for chain in self.chains:
            chain.set_fixed_base_mode(fixed)

    def validate(self):
        for index, chain in enumerate(self.chains):
            chain.validate()
            connection = chain.connection
            if connection is None:
                continue
            if not 0 <= connection.parent_chain_index < index:
                raise ConfigurationError(
                    f"Chain {index} is connected to chain {connection.parent_chain_index}, "
                    f"connections must reference an earlier chain"
                )
            if not 0 <= connection.parent_bone_index < self.chains[connection.parent_chain_index].bone_count:
                raise ConfigurationError(
                    f"Chain {index} is connected to missing bone {connection.parent_bone_index} "
                    f"of chain {connection.parent_chain_index}"
                )

    def solve_for_target(self, target: Optional[VectorLike] = None) -> List[float]:
        """
        Solve every chain once, in index order

        :param target: structure-wide target used by chains without an embedded target
        :return: solve distance of each chain
        """
        from ..solver.solve_structure import solve_structure_for_target

        return solve_structure_for_target(self, target)

    def __repr__(self):
        return f"<Structure {self.name!r}: {len(self.chains)} chains>"
