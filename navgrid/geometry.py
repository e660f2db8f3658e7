"""Small immutable vector/rotation types used across the grid and movement code.

Frames & units: x forward/east, y right/north, z up; world units are whatever the
embedding game uses (defaults assume centimetres). Rotations are in degrees.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scale: float) -> "Vector3":
        return Vector3(self.x * scale, self.y * scale, self.z * scale)

    __rmul__ = __mul__

    def __truediv__(self, scale: float) -> "Vector3":
        return Vector3(self.x / scale, self.y / scale, self.z / scale)

    def size(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def size_2d(self) -> float:
        return math.hypot(self.x, self.y)

    def distance(self, other: "Vector3") -> float:
        return (self - other).size()

    def normalized(self) -> "Vector3":
        length = self.size()
        if length <= 1e-9:
            return Vector3()
        return self / length

    def lerp(self, other: "Vector3", alpha: float) -> "Vector3":
        return self + (other - self) * alpha

    def rotated_yaw(self, yaw: float) -> "Vector3":
        """Rotate around the z axis by ``yaw`` degrees."""
        rad = math.radians(yaw)
        c, s = math.cos(rad), math.sin(rad)
        return Vector3(self.x * c - self.y * s, self.x * s + self.y * c, self.z)


def normalize_axis(angle: float) -> float:
    """Wrap an angle in degrees to (-180, 180]."""
    angle = math.fmod(angle, 360.0)
    if angle > 180.0:
        angle -= 360.0
    elif angle <= -180.0:
        angle += 360.0
    return angle


@dataclass(frozen=True)
class Rotator:
    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0

    @classmethod
    def from_direction(cls, direction: Vector3) -> "Rotator":
        """Facing that looks along ``direction`` (roll is always zero)."""
        yaw = math.degrees(math.atan2(direction.y, direction.x))
        pitch = math.degrees(math.atan2(direction.z, direction.size_2d()))
        return cls(pitch=pitch, yaw=yaw, roll=0.0)

    def normalized(self) -> "Rotator":
        return Rotator(normalize_axis(self.pitch), normalize_axis(self.yaw), normalize_axis(self.roll))

    def delta(self, other: "Rotator") -> "Rotator":
        """Shortest per-axis rotation that takes ``self`` to ``other``."""
        return Rotator(
            normalize_axis(other.pitch - self.pitch),
            normalize_axis(other.yaw - self.yaw),
            normalize_axis(other.roll - self.roll),
        )

    def __add__(self, other: "Rotator") -> "Rotator":
        return Rotator(self.pitch + other.pitch, self.yaw + other.yaw, self.roll + other.roll)

    def max_abs_component(self) -> float:
        return max(abs(self.pitch), abs(self.yaw), abs(self.roll))

    def is_zero(self, tolerance: float = 1e-6) -> bool:
        return self.normalized().max_abs_component() <= tolerance
