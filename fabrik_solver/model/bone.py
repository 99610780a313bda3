"""
Bone - a rigid, fixed-length segment between two 3D points
"""
import numpy as np
from enum import Enum
from typing import Optional

from ..errors import ConfigurationError
from ..utils.vector_utils import VectorLike, as_vector, DEGENERATE_EPSILON
from .joint import Joint, BallJoint


class BoneConnectionPoint(Enum):
    START = 'start'
    END = 'end'


class Bone:
    """
    A rigid segment owned by exactly one chain.

    The length is fixed when the bone is created; moving one endpoint does not change it, the solver passes
    are responsible for moving the other endpoint to keep |end - start| == length.
    """

    def __init__(self, start_location: VectorLike, end_location: VectorLike,
                 joint: Optional[Joint] = None,
                 name: str = '',
                 color: Optional[tuple] = None):
        """
        :param start_location: bone start (Vec3)
        :param end_location: bone end (Vec3)
        :param joint: constraint of this bone relative to the previous bone; defaults to an unconstrained ball joint
        :param name: cosmetic name
        :param color: cosmetic RGB(A) tuple
        """
        self.start_location: np.ndarray = as_vector(start_location)
        self.end_location: np.ndarray = as_vector(end_location)

        offset = self.end_location - self.start_location
        length = float(np.linalg.norm(offset))
        if length < DEGENERATE_EPSILON:
            raise ConfigurationError("Bone length must be greater than zero (start and end locations coincide)")
        self._length: float = length
        self.direction_uv: np.ndarray = offset / length

        self.joint: Joint = joint if joint is not None else BallJoint()
        self.name: str = name
        self.color: Optional[tuple] = color

    @classmethod
    def from_direction(cls, start_location: VectorLike, direction: VectorLike, length: float,
                       joint: Optional[Joint] = None,
                       name: str = '',
                       color: Optional[tuple] = None) -> 'Bone':
        """
        Create a bone from its start location, direction and length

        :param start_location: bone start (Vec3)
        :param direction: bone direction, need not be normalized but must be non-zero
        :param length: bone length, must be > 0
        :return: new Bone
        """
        direction = as_vector(direction)
        norm = np.linalg.norm(direction)
        if norm < DEGENERATE_EPSILON:
            raise ConfigurationError("Bone direction cannot be a zero vector")
        if not length > 0.0:
            raise ConfigurationError(f"Bone length must be greater than zero, got {length}")
        start = as_vector(start_location)
        end = start + direction / norm * float(length)
        return cls(start, end, joint=joint, name=name, color=color)

    @property
    def length(self) -> float:
        return self._length

    @property
    def live_length(self) -> float:
        """Distance between the current endpoints (equals length after every solve pass)"""
        return float(np.linalg.norm(self.end_location - self.start_location))

    def set_joint(self, joint: Joint):
        self.joint = joint

    def set_start_location(self, location: VectorLike):
        self.start_location = as_vector(location)
        self._refresh_direction()

    def set_end_location(self, location: VectorLike):
        self.end_location = as_vector(location)
        self._refresh_direction()

    def translate(self, delta: VectorLike):
        """Move both endpoints by delta, keeping direction and length"""
        delta = as_vector(delta)
        self.start_location = self.start_location + delta
        self.end_location = self.end_location + delta

    def connection_point_location(self, point: BoneConnectionPoint) -> np.ndarray:
        if point == BoneConnectionPoint.START:
            return self.start_location.copy()
        return self.end_location.copy()

    def copy(self) -> 'Bone':
        """Deep copy; the joint is copied as well, joints are never shared between bones"""
        bone = Bone(self.start_location, self.end_location, joint=self.joint.copy(), name=self.name, color=self.color)
        # keep the authoritative length even if the endpoints have drifted
        bone._length = self._length
        bone.direction_uv = self.direction_uv.copy()
        return bone

    def _refresh_direction(self):
        offset = self.end_location - self.start_location
        norm = np.linalg.norm(offset)
        if norm > DEGENERATE_EPSILON:
            self.direction_uv = offset / norm

    def __repr__(self):
        return (f"<Bone {self.name!r}: start={np.round(self.start_location, 4).tolist()} "
                f"end={np.round(self.end_location, 4).tolist()} length={self._length:.4f}>")
