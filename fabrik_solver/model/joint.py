"""
Joint constraint variants
A joint describes the rotational freedom of a bone relative to a world axis or to the previous bone's direction
"""
import numpy as np
from enum import Enum
from typing import Optional, Union
from scipy.spatial.transform import Rotation as R

from ..errors import ConfigurationError
from ..utils.vector_utils import (
    VectorLike,
    as_vector,
    angle_between_degs,
    signed_angle_degs,
    rotate_about_axis,
    project_onto_plane,
    perpendicular,
    is_perpendicular,
    bone_frame,
    DEGENERATE_EPSILON,
)

MIN_CONSTRAINT_DEGS = 0.0
MAX_CONSTRAINT_DEGS = 180.0

# Limits within this many degrees of MAX_CONSTRAINT_DEGS count as unconstrained
UNCONSTRAINED_TOLERANCE_DEGS = 0.001


class JointType(Enum):
    BALL = 'ball'
    GLOBAL_HINGE = 'global_hinge'
    LOCAL_HINGE = 'local_hinge'


def _validate_constraint_degs(angle_degs: float, label: str) -> float:
    angle_degs = float(angle_degs)
    if not MIN_CONSTRAINT_DEGS <= angle_degs <= MAX_CONSTRAINT_DEGS:
        raise ConfigurationError(
            f"{label} must be between {MIN_CONSTRAINT_DEGS} and {MAX_CONSTRAINT_DEGS} degrees inclusive, got {angle_degs}"
        )
    return angle_degs


def _validate_axis(axis: VectorLike, label: str) -> np.ndarray:
    axis = as_vector(axis)
    norm = np.linalg.norm(axis)
    if norm < DEGENERATE_EPSILON:
        raise ConfigurationError(f"{label} cannot be a zero vector: {axis}")
    return axis / norm


class BallJoint:
    """
    Ball (rotor) joint - the bone may rotate freely within a cone about the reference direction
    """

    def __init__(self, rotor_constraint_degs: float = MAX_CONSTRAINT_DEGS):
        """
        :param rotor_constraint_degs: cone half-angle in degrees; 180 means unconstrained
        """
        self.rotor_constraint_degs: float = _validate_constraint_degs(rotor_constraint_degs, "Rotor constraint angle")

    @property
    def type(self) -> JointType:
        return JointType.BALL

    @property
    def is_constrained(self) -> bool:
        return abs(self.rotor_constraint_degs - MAX_CONSTRAINT_DEGS) > UNCONSTRAINED_TOLERANCE_DEGS

    def set_rotor_constraint_degs(self, angle_degs: float):
        self.rotor_constraint_degs = _validate_constraint_degs(angle_degs, "Rotor constraint angle")

    def state_key(self) -> tuple:
        return JointType.BALL, self.rotor_constraint_degs

    def copy(self) -> 'BallJoint':
        return BallJoint(self.rotor_constraint_degs)

    def __repr__(self):
        return f"<BallJoint: {self.rotor_constraint_degs:.2f} degs>"


class HingeJoint:
    """
    Hinge joint - the bone may only rotate within the plane whose normal is the rotation axis,
    limited clockwise and anticlockwise about the reference axis.

    GLOBAL_HINGE axes are world space; LOCAL_HINGE axes are expressed in the frame of the previous bone
    (see utils.vector_utils.bone_frame).
    """

    def __init__(self, joint_type: JointType,
                 rotation_axis: VectorLike,
                 reference_axis: VectorLike,
                 clockwise_constraint_degs: float = MAX_CONSTRAINT_DEGS,
                 anticlockwise_constraint_degs: float = MAX_CONSTRAINT_DEGS):
        """
        :param joint_type: JointType.GLOBAL_HINGE or JointType.LOCAL_HINGE
        :param rotation_axis: hinge plane normal (normalized on store)
        :param reference_axis: zero-angle direction, must lie in the hinge plane (normalized on store)
        :param clockwise_constraint_degs: limit clockwise of the reference axis, 0 to 180
        :param anticlockwise_constraint_degs: limit anticlockwise of the reference axis, 0 to 180
        """
        if joint_type not in (JointType.GLOBAL_HINGE, JointType.LOCAL_HINGE):
            raise ConfigurationError(f"Hinge joint type must be GLOBAL_HINGE or LOCAL_HINGE, got {joint_type}")
        self.joint_type: JointType = joint_type
        self.rotation_axis: np.ndarray = np.zeros(3)
        self.reference_axis: np.ndarray = np.zeros(3)
        self.set_axes(rotation_axis, reference_axis)
        self.clockwise_constraint_degs: float = MAX_CONSTRAINT_DEGS
        self.anticlockwise_constraint_degs: float = MAX_CONSTRAINT_DEGS
        self.set_constraint_degs(clockwise_constraint_degs, anticlockwise_constraint_degs)

    @classmethod
    def freely_rotating(cls, joint_type: JointType, rotation_axis: VectorLike) -> 'HingeJoint':
        """
        Unconstrained hinge; the reference axis is generated perpendicular to the rotation axis
        """
        axis = _validate_axis(rotation_axis, "Hinge rotation axis")
        return cls(joint_type, axis, perpendicular(axis))

    @property
    def type(self) -> JointType:
        return self.joint_type

    @property
    def is_constrained(self) -> bool:
        return (abs(self.clockwise_constraint_degs - MAX_CONSTRAINT_DEGS) > UNCONSTRAINED_TOLERANCE_DEGS
                or abs(self.anticlockwise_constraint_degs - MAX_CONSTRAINT_DEGS) > UNCONSTRAINED_TOLERANCE_DEGS)

    def set_axes(self, rotation_axis: VectorLike, reference_axis: VectorLike):
        rotation_axis = _validate_axis(rotation_axis, "Hinge rotation axis")
        reference_axis = _validate_axis(reference_axis, "Hinge reference axis")
        if not is_perpendicular(rotation_axis, reference_axis):
            raise ConfigurationError(
                "The hinge reference axis must lie in the plane of the hinge rotation axis, i.e. they must be perpendicular"
            )
        self.rotation_axis = rotation_axis
        self.reference_axis = reference_axis

    def set_constraint_degs(self, clockwise_degs: float, anticlockwise_degs: float):
        self.clockwise_constraint_degs = _validate_constraint_degs(clockwise_degs, "Clockwise constraint angle")
        self.anticlockwise_constraint_degs = _validate_constraint_degs(anticlockwise_degs, "Anticlockwise constraint angle")

    def state_key(self) -> tuple:
        return (self.joint_type, tuple(self.rotation_axis.tolist()), tuple(self.reference_axis.tolist()),
                self.clockwise_constraint_degs, self.anticlockwise_constraint_degs)

    def copy(self) -> 'HingeJoint':
        return HingeJoint(self.joint_type, self.rotation_axis.copy(), self.reference_axis.copy(),
                          self.clockwise_constraint_degs, self.anticlockwise_constraint_degs)

    def __repr__(self):
        return (f"<HingeJoint: {self.joint_type.name} axis={np.round(self.rotation_axis, 3).tolist()} "
                f"cw={self.clockwise_constraint_degs:.2f} acw={self.anticlockwise_constraint_degs:.2f}>")


Joint = Union[BallJoint, HingeJoint]


def clamp_rotor(candidate_uv: np.ndarray, axis_uv: np.ndarray, limit_degs: float) -> np.ndarray:
    """
    Keep candidate_uv within a cone of half-angle limit_degs about axis_uv

    :param candidate_uv: desired unit direction
    :param axis_uv: unit cone axis
    :param limit_degs: cone half-angle in degrees
    :return: candidate_uv unchanged when inside the cone, otherwise the direction on the cone surface closest to it
    """
    if angle_between_degs(axis_uv, candidate_uv) <= limit_degs:
        return candidate_uv

    correction_axis = np.cross(axis_uv, candidate_uv)
    correction_norm = np.linalg.norm(correction_axis)
    if correction_norm < DEGENERATE_EPSILON:
        # anti-parallel: any plane containing the axis will do, pick it deterministically
        correction_axis = perpendicular(axis_uv)
    else:
        correction_axis = correction_axis / correction_norm

    clamped = rotate_about_axis(axis_uv, limit_degs, correction_axis)
    return clamped / np.linalg.norm(clamped)


def clamp_hinge(candidate_uv: np.ndarray,
                rotation_axis: np.ndarray,
                reference_axis: np.ndarray,
                clockwise_degs: float,
                anticlockwise_degs: float,
                constrained: bool = True) -> np.ndarray:
    """
    Keep candidate_uv in the hinge plane and within the hinge limits

    The signed angle from reference_axis is positive clockwise (looking along rotation_axis) and must lie in
    [-anticlockwise_degs, clockwise_degs].

    :param candidate_uv: desired unit direction
    :param rotation_axis: unit hinge plane normal, already in world space
    :param reference_axis: unit zero-angle direction in the hinge plane, already in world space
    :param clockwise_degs: clockwise limit
    :param anticlockwise_degs: anticlockwise limit
    :param constrained: when False only the plane projection is applied
    :return: clamped unit direction
    """
    projected = project_onto_plane(candidate_uv, rotation_axis)
    projected_norm = np.linalg.norm(projected)
    if projected_norm < DEGENERATE_EPSILON:
        # candidate parallel to the rotation axis, no in-plane component left
        return reference_axis.copy()
    direction = projected / projected_norm

    if not constrained:
        return direction

    signed_angle = signed_angle_degs(reference_axis, direction, rotation_axis)
    if signed_angle > clockwise_degs:
        direction = rotate_about_axis(reference_axis, clockwise_degs, rotation_axis)
    elif signed_angle < -anticlockwise_degs:
        direction = rotate_about_axis(reference_axis, -anticlockwise_degs, rotation_axis)
    else:
        return direction
    return direction / np.linalg.norm(direction)


def clamp_direction(joint: Joint,
                    candidate_uv: np.ndarray,
                    reference_uv: np.ndarray,
                    relative_frame: Optional[R] = None) -> np.ndarray:
    """
    Clamp a candidate bone direction against a joint

    :param joint: BallJoint or HingeJoint
    :param candidate_uv: unit direction the bone would like to take
    :param reference_uv: unit direction the joint is relative to (usually the previous bone's direction)
    :param relative_frame: frame for LOCAL_HINGE axes; defaults to the bone frame of reference_uv
    :return: clamped unit direction
    """
    if isinstance(joint, BallJoint):
        if not joint.is_constrained:
            return candidate_uv
        return clamp_rotor(candidate_uv, reference_uv, joint.rotor_constraint_degs)

    if isinstance(joint, HingeJoint):
        if joint.joint_type == JointType.GLOBAL_HINGE:
            rotation_axis = joint.rotation_axis
            reference_axis = joint.reference_axis
        else:
            frame = relative_frame if relative_frame is not None else bone_frame(reference_uv)
            rotation_axis = frame.apply(joint.rotation_axis)
            reference_axis = frame.apply(joint.reference_axis)
        return clamp_hinge(candidate_uv, rotation_axis, reference_axis,
                           joint.clockwise_constraint_degs, joint.anticlockwise_constraint_degs,
                           joint.is_constrained)

    raise TypeError(f"Unknown joint: {joint!r}")
