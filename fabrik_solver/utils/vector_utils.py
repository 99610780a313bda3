"""
Vector utility functions
Thin helpers over numpy and scipy's Rotation used by the constraint clamps and the solver passes
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Union, Sequence

VectorLike = Union[np.ndarray, Sequence[float]]

# Basis of a bone's local frame: a bone pointing along +Z has the identity frame.
# Local axes follow a +Z forward convention; axes authored for a -Z forward frame must be mirrored.
FRAME_FORWARD = np.array([0.0, 0.0, 1.0])

UNIT_LENGTH_TOLERANCE = 1e-6
PERPENDICULAR_TOLERANCE = 0.01
DEGENERATE_EPSILON = 1e-9


def as_vector(v: VectorLike) -> np.ndarray:
    """
    Convert a 3-element sequence into a float64 numpy vector (always a copy)

    :param v: vector, list or tuple of 3 floats
    :return: float64 array of shape (3,)
    """
    vector = np.array(v, dtype=np.float64)
    if vector.shape != (3,):
        raise ValueError(f"Vector must be a 3-element array, got shape {vector.shape}")
    return vector


def normalize(v: VectorLike) -> np.ndarray:
    """
    Return the unit vector of v

    :param v: non-zero vector
    :return: unit vector
    """
    vector = as_vector(v)
    norm = np.linalg.norm(vector)
    if norm < DEGENERATE_EPSILON:
        raise ValueError(f"Vector norm too small: {norm}, cannot normalize")
    return vector / norm


def is_unit_vector(v: VectorLike, tolerance: float = UNIT_LENGTH_TOLERANCE) -> bool:
    return abs(np.linalg.norm(as_vector(v)) - 1.0) <= tolerance


def is_perpendicular(a: VectorLike, b: VectorLike, tolerance: float = PERPENDICULAR_TOLERANCE) -> bool:
    """Whether two unit vectors are perpendicular, to a dot-product tolerance"""
    return abs(float(np.dot(as_vector(a), as_vector(b)))) <= tolerance


def angle_between_degs(a: np.ndarray, b: np.ndarray) -> float:
    """
    Unsigned angle between two unit vectors, in degrees (0 to 180)
    """
    cos_angle = np.clip(np.dot(a, b), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def signed_angle_degs(reference: np.ndarray, v: np.ndarray, axis: np.ndarray) -> float:
    """
    Signed angle from reference to v about axis, in degrees (-180 to 180)

    Positive values follow the right-hand rule about axis, which reads as clockwise when looking along the axis.
    """
    sin_part = np.dot(np.cross(reference, v), axis)
    cos_part = np.dot(reference, v)
    return float(np.degrees(np.arctan2(sin_part, cos_part)))


def rotate_about_axis(v: np.ndarray, angle_degs: float, axis: np.ndarray) -> np.ndarray:
    """
    Rotate v by angle_degs about the unit axis (right-hand rule)

    :param v: vector to rotate
    :param angle_degs: rotation angle in degrees
    :param axis: unit rotation axis
    :return: rotated vector
    """
    rotation = R.from_rotvec(np.radians(angle_degs) * axis)
    return rotation.apply(v)


def project_onto_plane(v: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """
    Project v onto the plane through the origin with the given unit normal (result is not normalized)
    """
    return v - np.dot(v, plane_normal) * plane_normal


def perpendicular(v: VectorLike) -> np.ndarray:
    """
    Deterministic unit vector perpendicular to the unit vector v

    Crosses with world +Y, falling back to world +X when v is within a few degrees of vertical.

    :param v: unit vector
    :return: unit vector perpendicular to v
    """
    vector = as_vector(v)
    if abs(vector[1]) < 0.99:
        # cross(v, UP)
        result = np.array([-vector[2], 0.0, vector[0]])
    else:
        # cross(v, RIGHT)
        result = np.array([0.0, vector[2], -vector[1]])
    return result / np.linalg.norm(result)


def rotation_between(a: np.ndarray, b: np.ndarray) -> R:
    """
    Minimal rotation taking unit vector a onto unit vector b

    Anti-parallel inputs rotate half a turn about a deterministic perpendicular of a.
    """
    axis = np.cross(a, b)
    axis_norm = np.linalg.norm(axis)
    cos_angle = np.clip(np.dot(a, b), -1.0, 1.0)
    if axis_norm < DEGENERATE_EPSILON:
        if cos_angle > 0.0:
            return R.identity()
        return R.from_rotvec(np.pi * perpendicular(a))
    angle = np.arctan2(axis_norm, cos_angle)
    return R.from_rotvec(axis / axis_norm * angle)


def bone_frame(direction_uv: np.ndarray) -> R:
    """
    Local frame of a bone: the rotation taking FRAME_FORWARD onto the bone's direction

    Local hinge axes and local basebone constraints are expressed in this frame.
    A bone along +Z has the identity frame, so a local axis equals the world axis for such a parent bone.
    """
    return rotation_between(FRAME_FORWARD, direction_uv)
