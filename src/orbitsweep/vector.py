"""Minimal 3D vector value type.

Vectors are immutable: every operation returns a new `Vector3`, so a vector held
by one body can never be changed through another reference.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_array(cls, values: Iterable[float]) -> Vector3:
        """Build a vector from any length-3 sequence (list, tuple, np.ndarray)."""
        arr = np.asarray(values, dtype=float)
        if arr.shape != (3,):
            raise ValueError(f"Expected 3 components, got shape {arr.shape}")
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def add(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def sub(self, other: Vector3) -> Vector3:
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scale(self, s: float) -> Vector3:
        return Vector3(self.x * s, self.y * s, self.z * s)

    def dot(self, other: Vector3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: Vector3) -> float:
        return self.sub(other).magnitude()

    def clone(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)

    def __add__(self, other: Vector3) -> Vector3:
        return self.add(other)

    def __sub__(self, other: Vector3) -> Vector3:
        return self.sub(other)

    def __mul__(self, s: float) -> Vector3:
        return self.scale(s)

    __rmul__ = __mul__

    def __neg__(self) -> Vector3:
        return Vector3(-self.x, -self.y, -self.z)

    def __iter__(self):
        return iter((self.x, self.y, self.z))
