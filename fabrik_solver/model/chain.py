"""
Chain - an ordered sequence of bones (base -> tip) solved together toward one target,
plus a fluent ChainBuilder that validates its configuration at build() time
"""
import numpy as np
from enum import Enum
from typing import List, NamedTuple, Optional

from ..errors import ConfigurationError
from ..utils.vector_utils import VectorLike, as_vector, normalize, perpendicular, bone_frame
from .bone import Bone, BoneConnectionPoint
from .joint import Joint, JointType, BallJoint, HingeJoint, MAX_CONSTRAINT_DEGS

DEFAULT_MAX_ITERATIONS = 20
DEFAULT_MIN_ITERATIONS = 1
DEFAULT_SOLVE_DISTANCE_THRESHOLD = 1e-3
DEFAULT_MIN_ITERATION_CHANGE = 1e-4


class BaseboneConstraintType(Enum):
    NONE = 'none'
    GLOBAL_ROTOR = 'global_rotor'
    LOCAL_ROTOR = 'local_rotor'
    GLOBAL_HINGE = 'global_hinge'
    LOCAL_HINGE = 'local_hinge'

    @property
    def is_local(self) -> bool:
        return self in (BaseboneConstraintType.LOCAL_ROTOR, BaseboneConstraintType.LOCAL_HINGE)

    @property
    def is_rotor(self) -> bool:
        return self in (BaseboneConstraintType.GLOBAL_ROTOR, BaseboneConstraintType.LOCAL_ROTOR)

    @property
    def is_hinge(self) -> bool:
        return self in (BaseboneConstraintType.GLOBAL_HINGE, BaseboneConstraintType.LOCAL_HINGE)


class Connection(NamedTuple):
    """Where a chain's base is anchored in its structure: a point on a bone of an earlier chain"""
    parent_chain_index: int
    parent_bone_index: int
    connection_point: BoneConnectionPoint = BoneConnectionPoint.END


class Chain:
    """
    Kinematic chain; bones[0] is the base bone, bones[-1] the end effector bone.

    Solving is delegated to solver.solve_chain. The chain holds the memoized state of its last solve
    (last_target_location, last_base_location, current_solve_distance) used for the early exit.
    """

    def __init__(self, bones: Optional[List[Bone]] = None, name: str = ''):
        self.bones: List[Bone] = []
        self.name: str = name
        self._length: float = 0.0

        self.basebone_constraint_type: BaseboneConstraintType = BaseboneConstraintType.NONE
        self.basebone_constraint_uv: Optional[np.ndarray] = None
        # resolved from the parent bone's direction before each solve (LOCAL_* constraints only)
        self.basebone_relative_constraint_uv: Optional[np.ndarray] = None
        self.basebone_relative_reference_constraint_uv: Optional[np.ndarray] = None

        self.fixed_base_mode: bool = True
        self.base_location: np.ndarray = np.zeros(3)

        self.last_target_location: Optional[np.ndarray] = None
        self.last_base_location: Optional[np.ndarray] = None
        self.current_solve_distance: float = float('inf')
        self.last_constraint_state: Optional[tuple] = None

        self.use_embedded_target: bool = False
        self.embedded_target_location: np.ndarray = np.zeros(3)

        self.min_iterations: int = DEFAULT_MIN_ITERATIONS
        self.max_iterations: int = DEFAULT_MAX_ITERATIONS
        self.solve_distance_threshold: float = DEFAULT_SOLVE_DISTANCE_THRESHOLD
        self.min_iteration_change: float = DEFAULT_MIN_ITERATION_CHANGE

        self.connection: Optional[Connection] = None

        for bone in bones or []:
            self.add_bone(bone)

    # ---- bones ----

    def add_bone(self, bone: Bone):
        """
        Append a bone at the tip. The first bone added also sets the base location.
        """
        if not self.bones:
            self.base_location = bone.start_location.copy()
        self.bones.append(bone)
        self._update_length()
        self.reset_solve_state()

    def add_consecutive_bone(self, direction: VectorLike, length: float, joint: Optional[Joint] = None,
                             name: str = '') -> Bone:
        """
        Append a bone starting at the current end effector location

        :param direction: bone direction (normalized on use)
        :param length: bone length, > 0
        :param joint: joint relative to the previous bone, defaults to an unconstrained ball joint
        :return: the new bone
        """
        if not self.bones:
            raise ConfigurationError("Cannot add a consecutive bone to a chain without a base bone")
        bone = Bone.from_direction(self.end_effector_bone.end_location, direction, length, joint=joint, name=name)
        self.add_bone(bone)
        return bone

    def remove_bone(self, index: int) -> Bone:
        bone = self.bones.pop(index)
        self._update_length()
        self.reset_solve_state()
        return bone

    def get_bone(self, index: int) -> Bone:
        return self.bones[index]

    @property
    def bone_count(self) -> int:
        return len(self.bones)

    @property
    def base_bone(self) -> Bone:
        return self.bones[0]

    @property
    def end_effector_bone(self) -> Bone:
        return self.bones[-1]

    @property
    def end_effector_location(self) -> np.ndarray:
        return self.bones[-1].end_location.copy()

    @property
    def length(self) -> float:
        """Sum of the bone lengths, cached on bone add/remove"""
        return self._length

    @property
    def live_length(self) -> float:
        return float(sum(bone.live_length for bone in self.bones))

    def _update_length(self):
        self._length = float(sum(bone.length for bone in self.bones))

    # ---- configuration ----

    def set_rotor_basebone_constraint(self, constraint_type: BaseboneConstraintType, constraint_axis: VectorLike,
                                      angle_degs: float):
        """
        Constrain the base bone to a cone about constraint_axis

        :param constraint_type: GLOBAL_ROTOR (world axis) or LOCAL_ROTOR (axis relative to the parent bone)
        :param constraint_axis: cone axis
        :param angle_degs: cone half-angle, 0 to 180
        """
        if not constraint_type.is_rotor:
            raise ConfigurationError(f"Expected a rotor basebone constraint type, got {constraint_type}")
        if not self.bones:
            raise ConfigurationError("Add a base bone before setting the basebone constraint")
        if constraint_type == BaseboneConstraintType.GLOBAL_ROTOR and not self.fixed_base_mode:
            raise ConfigurationError("A GLOBAL_ROTOR basebone constraint requires fixed base mode")
        axis = _unit_axis(constraint_axis, "Basebone constraint axis")
        joint = BallJoint(angle_degs)

        self.base_bone.set_joint(joint)
        self.basebone_constraint_type = constraint_type
        self.basebone_constraint_uv = axis
        self.basebone_relative_constraint_uv = axis.copy()
        self.basebone_relative_reference_constraint_uv = None
        self.reset_solve_state()

    def set_hinge_basebone_constraint(self, constraint_type: BaseboneConstraintType, rotation_axis: VectorLike,
                                      clockwise_degs: float = MAX_CONSTRAINT_DEGS,
                                      anticlockwise_degs: float = MAX_CONSTRAINT_DEGS,
                                      reference_axis: Optional[VectorLike] = None):
        """
        Constrain the base bone to a hinge

        :param constraint_type: GLOBAL_HINGE (world axes) or LOCAL_HINGE (axes relative to the parent bone)
        :param rotation_axis: hinge plane normal
        :param clockwise_degs: clockwise limit from the reference axis
        :param anticlockwise_degs: anticlockwise limit from the reference axis
        :param reference_axis: zero-angle direction in the hinge plane; generated perpendicular to rotation_axis when None
        """
        if not constraint_type.is_hinge:
            raise ConfigurationError(f"Expected a hinge basebone constraint type, got {constraint_type}")
        if not self.bones:
            raise ConfigurationError("Add a base bone before setting the basebone constraint")
        axis = _unit_axis(rotation_axis, "Basebone hinge rotation axis")
        if reference_axis is None:
            reference_axis = perpendicular(axis)
        joint_type = JointType.GLOBAL_HINGE if constraint_type == BaseboneConstraintType.GLOBAL_HINGE \
            else JointType.LOCAL_HINGE
        joint = HingeJoint(joint_type, axis, reference_axis, clockwise_degs, anticlockwise_degs)

        self.base_bone.set_joint(joint)
        self.basebone_constraint_type = constraint_type
        self.basebone_constraint_uv = joint.rotation_axis.copy()
        self.basebone_relative_constraint_uv = joint.rotation_axis.copy()
        self.basebone_relative_reference_constraint_uv = joint.reference_axis.copy()
        self.reset_solve_state()

    def clear_basebone_constraint(self):
        self.basebone_constraint_type = BaseboneConstraintType.NONE
        self.basebone_constraint_uv = None
        self.basebone_relative_constraint_uv = None
        self.basebone_relative_reference_constraint_uv = None
        if self.bones:
            self.base_bone.set_joint(BallJoint())
        self.reset_solve_state()

    def update_basebone_relative_constraints(self, parent_direction_uv: VectorLike):
        """
        Resolve LOCAL_* basebone constraint axes into world space using the parent bone's current direction.
        Called by the owning structure before each solve; a no-op for other constraint types.
        """
        if not self.basebone_constraint_type.is_local:
            return
        frame = bone_frame(normalize(parent_direction_uv))
        self.basebone_relative_constraint_uv = frame.apply(self.basebone_constraint_uv)
        if self.basebone_constraint_type == BaseboneConstraintType.LOCAL_HINGE:
            self.basebone_relative_reference_constraint_uv = frame.apply(self.base_bone.joint.reference_axis)

    def set_fixed_base_mode(self, fixed: bool):
        if not fixed and self.connection is not None:
            raise ConfigurationError("This chain is connected to another chain so must remain in fixed base mode")
        if not fixed and self.basebone_constraint_type == BaseboneConstraintType.GLOBAL_ROTOR:
            raise ConfigurationError("Cannot use a free base when the basebone constraint is a GLOBAL_ROTOR")
        self.fixed_base_mode = fixed
        self.reset_solve_state()

    def set_base_location(self, location: VectorLike):
        self.base_location = as_vector(location)

    def set_embedded_target(self, location: VectorLike):
        self.embedded_target_location = as_vector(location)

    def set_use_embedded_target(self, enabled: bool):
        self.use_embedded_target = enabled

    def set_solver_settings(self, max_iterations: Optional[int] = None,
                            min_iterations: Optional[int] = None,
                            solve_distance_threshold: Optional[float] = None,
                            min_iteration_change: Optional[float] = None):
        """Update any subset of the iteration settings; unspecified values keep their current setting"""
        max_iterations = self.max_iterations if max_iterations is None else int(max_iterations)
        min_iterations = self.min_iterations if min_iterations is None else int(min_iterations)
        threshold = self.solve_distance_threshold if solve_distance_threshold is None else float(solve_distance_threshold)
        min_change = self.min_iteration_change if min_iteration_change is None else float(min_iteration_change)

        if max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {max_iterations}")
        if not 0 <= min_iterations <= max_iterations:
            raise ConfigurationError(f"min_iterations must be between 0 and max_iterations, got {min_iterations}")
        if threshold < 0.0:
            raise ConfigurationError(f"solve_distance_threshold must not be negative, got {threshold}")
        if min_change < 0.0:
            raise ConfigurationError(f"min_iteration_change must not be negative, got {min_change}")

        self.max_iterations = max_iterations
        self.min_iterations = min_iterations
        self.solve_distance_threshold = threshold
        self.min_iteration_change = min_change

    def validate(self):
        """
        Raise ConfigurationError if the chain cannot be solved in its current configuration
        """
        if not self.bones:
            raise ConfigurationError(f"Chain {self.name!r} has no bones and cannot be solved")
        if self.basebone_constraint_type.is_local and self.connection is None:
            raise ConfigurationError(
                f"Chain {self.name!r} uses a {self.basebone_constraint_type.name} basebone constraint "
                f"but is not connected to a parent bone"
            )
        if self.connection is not None and not self.fixed_base_mode:
            raise ConfigurationError(f"Connected chain {self.name!r} must be in fixed base mode")
        if self.basebone_constraint_type == BaseboneConstraintType.GLOBAL_ROTOR and not self.fixed_base_mode:
            raise ConfigurationError(f"Chain {self.name!r} has a GLOBAL_ROTOR basebone constraint without a fixed base")

    def translate(self, delta: VectorLike):
        """Move every bone and the base location by delta"""
        delta = as_vector(delta)
        for bone in self.bones:
            bone.translate(delta)
        self.base_location = self.base_location + delta

    # ---- solving ----

    def solve_for_target(self, target: Optional[VectorLike] = None) -> float:
        """
        Solve the chain so its end effector approaches target

        :param target: target location; when None the embedded target is used, if enabled
        :return: distance between the end effector and the target after solving
        """
        from ..solver.solve_chain import solve_chain_for_target

        if target is None:
            if not self.use_embedded_target:
                raise ValueError("No target given and the chain does not use an embedded target")
            target = self.embedded_target_location
        return solve_chain_for_target(self, target)

    def solve_for_embedded_target(self) -> float:
        if not self.use_embedded_target:
            raise RuntimeError(f"Embedded target is not enabled on chain {self.name!r}")
        return self.solve_for_target(self.embedded_target_location)

    def reset_solve_state(self):
        """Forget the memoized last solve so the next solve always runs"""
        self.last_target_location = None
        self.last_base_location = None
        self.current_solve_distance = float('inf')
        self.last_constraint_state = None

    def constraint_state(self) -> tuple:
        """Everything besides the target and base location that shapes a solve, compared by the early exit"""
        return (
            self.fixed_base_mode,
            self.basebone_constraint_type,
            _state_key_or_none(self.basebone_relative_constraint_uv),
            _state_key_or_none(self.basebone_relative_reference_constraint_uv),
            tuple((bone.length, bone.joint.state_key()) for bone in self.bones),
        )

    def copy(self) -> 'Chain':
        chain = Chain([bone.copy() for bone in self.bones], name=self.name)
        chain.basebone_constraint_type = self.basebone_constraint_type
        chain.basebone_constraint_uv = _copy_or_none(self.basebone_constraint_uv)
        chain.basebone_relative_constraint_uv = _copy_or_none(self.basebone_relative_constraint_uv)
        chain.basebone_relative_reference_constraint_uv = _copy_or_none(self.basebone_relative_reference_constraint_uv)
        chain.fixed_base_mode = self.fixed_base_mode
        chain.base_location = self.base_location.copy()
        chain.last_target_location = _copy_or_none(self.last_target_location)
        chain.last_base_location = _copy_or_none(self.last_base_location)
        chain.current_solve_distance = self.current_solve_distance
        chain.last_constraint_state = self.last_constraint_state
        chain.use_embedded_target = self.use_embedded_target
        chain.embedded_target_location = self.embedded_target_location.copy()
        chain.min_iterations = self.min_iterations
        chain.max_iterations = self.max_iterations
        chain.solve_distance_threshold = self.solve_distance_threshold
        chain.min_iteration_change = self.min_iteration_change
        chain.connection = self.connection
        return chain

    def __repr__(self):
        return f"<Chain {self.name!r}: {len(self.bones)} bones, length={self._length:.4f}>"


def _unit_axis(axis: VectorLike, label: str) -> np.ndarray:
    try:
        return normalize(axis)
    except ValueError as e:
        raise ConfigurationError(f"{label} cannot be a zero vector") from e


def _copy_or_none(v: Optional[np.ndarray]) -> Optional[np.ndarray]:
    return None if v is None else v.copy()


def _state_key_or_none(v: Optional[np.ndarray]) -> Optional[tuple]:
    return None if v is None else tuple(v.tolist())


class ChainBuilder:
    """
    Fluent chain construction. Bones and settings are accumulated; the basebone/connection combination is only
    validated when build() is called.

    Example::

        chain = (ChainBuilder()
                 .add_base_bone([0, 0, 0], [1, 0, 0], 10.0)
                 .add_consecutive_rotor_constrained_bone([1, 0, 0], 10.0, 45.0)
                 .with_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, [1, 0, 0], 30.0)
                 .build())
    """

    def __init__(self):
        self._bones: List[Bone] = []
        self._name: str = ''
        self._basebone_type: BaseboneConstraintType = BaseboneConstraintType.NONE
        self._basebone_args: tuple = ()
        self._fixed_base_mode: bool = True
        self._connection: Optional[Connection] = None
        self._embedded_target: Optional[np.ndarray] = None
        self._solver_settings: dict = {}

    def add_base_bone(self, start_location: VectorLike, direction: VectorLike, length: float,
                      joint: Optional[Joint] = None, name: str = '') -> 'ChainBuilder':
        if self._bones:
            raise ConfigurationError("The chain already has a base bone")
        self._bones.append(Bone.from_direction(start_location, direction, length, joint=joint, name=name))
        return self

    def add_bone(self, bone: Bone) -> 'ChainBuilder':
        self._bones.append(bone)
        return self

    def add_consecutive_bone(self, direction: VectorLike, length: float, joint: Optional[Joint] = None,
                             name: str = '') -> 'ChainBuilder':
        if not self._bones:
            raise ConfigurationError("Add a base bone before adding consecutive bones")
        start = self._bones[-1].end_location
        self._bones.append(Bone.from_direction(start, direction, length, joint=joint, name=name))
        return self

    def add_consecutive_rotor_constrained_bone(self, direction: VectorLike, length: float, constraint_degs: float,
                                               name: str = '') -> 'ChainBuilder':
        return self.add_consecutive_bone(direction, length, BallJoint(constraint_degs), name=name)

    def add_consecutive_hinged_bone(self, direction: VectorLike, length: float, joint_type: JointType,
                                    rotation_axis: VectorLike,
                                    clockwise_degs: float,
                                    anticlockwise_degs: float,
                                    reference_axis: VectorLike,
                                    name: str = '') -> 'ChainBuilder':
        joint = HingeJoint(joint_type, rotation_axis, reference_axis, clockwise_degs, anticlockwise_degs)
        return self.add_consecutive_bone(direction, length, joint, name=name)

    def add_consecutive_freely_rotating_hinged_bone(self, direction: VectorLike, length: float,
                                                    joint_type: JointType,
                                                    rotation_axis: VectorLike,
                                                    name: str = '') -> 'ChainBuilder':
        joint = HingeJoint.freely_rotating(joint_type, rotation_axis)
        return self.add_consecutive_bone(direction, length, joint, name=name)

    def with_rotor_basebone_constraint(self, constraint_type: BaseboneConstraintType, constraint_axis: VectorLike,
                                       angle_degs: float) -> 'ChainBuilder':
        self._basebone_type = constraint_type
        self._basebone_args = (constraint_axis, angle_degs)
        return self

    def with_hinge_basebone_constraint(self, constraint_type: BaseboneConstraintType, rotation_axis: VectorLike,
                                       clockwise_degs: float = MAX_CONSTRAINT_DEGS,
                                       anticlockwise_degs: float = MAX_CONSTRAINT_DEGS,
                                       reference_axis: Optional[VectorLike] = None) -> 'ChainBuilder':
        self._basebone_type = constraint_type
        self._basebone_args = (rotation_axis, clockwise_degs, anticlockwise_degs, reference_axis)
        return self

    def with_fixed_base_mode(self, fixed: bool) -> 'ChainBuilder':
        self._fixed_base_mode = fixed
        return self

    def connected_to(self, parent_chain_index: int, parent_bone_index: int,
                     connection_point: BoneConnectionPoint = BoneConnectionPoint.END) -> 'ChainBuilder':
        """
        Record the intended connection. The structure validates the indices in Structure.add_chain.
        """
        self._connection = Connection(parent_chain_index, parent_bone_index, connection_point)
        return self

    def with_embedded_target(self, location: VectorLike) -> 'ChainBuilder':
        self._embedded_target = as_vector(location)
        return self

    def with_solver_settings(self, **settings) -> 'ChainBuilder':
        """Keyword arguments of Chain.set_solver_settings"""
        self._solver_settings.update(settings)
        return self

    def named(self, name: str) -> 'ChainBuilder':
        self._name = name
        return self

    def build(self) -> Chain:
        """
        Validate the accumulated configuration and create the chain

        :return: new Chain
        """
        if not self._bones:
            raise ConfigurationError("A chain needs at least one bone")
        if self._basebone_type.is_local and self._connection is None:
            raise ConfigurationError(
                f"A {self._basebone_type.name} basebone constraint requires the chain to be connected to a parent bone"
            )
        if not self._fixed_base_mode:
            if self._connection is not None:
                raise ConfigurationError("A connected chain must be in fixed base mode")
            if self._basebone_type == BaseboneConstraintType.GLOBAL_ROTOR:
                raise ConfigurationError("Cannot use a free base when the basebone constraint is a GLOBAL_ROTOR")

        chain = Chain([bone.copy() for bone in self._bones], name=self._name)
        if self._basebone_type.is_rotor:
            chain.set_rotor_basebone_constraint(self._basebone_type, *self._basebone_args)
        elif self._basebone_type.is_hinge:
            chain.set_hinge_basebone_constraint(self._basebone_type, *self._basebone_args)
        chain.fixed_base_mode = self._fixed_base_mode
        chain.connection = self._connection
        if self._embedded_target is not None:
            chain.set_embedded_target(self._embedded_target)
            chain.set_use_embedded_target(True)
        if self._solver_settings:
            chain.set_solver_settings(**self._solver_settings)
        return chain
