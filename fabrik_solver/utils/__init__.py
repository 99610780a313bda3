"""
Utility layer
Geometry helpers built on numpy and scipy.spatial.transform
"""

from .vector_utils import (
    as_vector,
    normalize,
    is_unit_vector,
    is_perpendicular,
    angle_between_degs,
    signed_angle_degs,
    rotate_about_axis,
    project_onto_plane,
    perpendicular,
    rotation_between,
    bone_frame,
)

__all__ = [
    'as_vector',
    'normalize',
    'is_unit_vector',
    'is_perpendicular',
    'angle_between_degs',
    'signed_angle_degs',
    'rotate_about_axis',
    'project_onto_plane',
    'perpendicular',
    'rotation_between',
    'bone_frame',
]
