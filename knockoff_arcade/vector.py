#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import math
from random import random


class Vector2D():
    """
    Mutable 2D vector used for positions and velocities.

    The in-place arithmetic methods (`add`, `subtract`, `multiply`, `divide`, `normalize`, ...) modify the vector
    and return it, so calls can be chained. The operators (`+`, `-`, `*`, `/`) always return a new vector.
    """

    # Default tolerance for `equals()`
    EPSILON = 1e-4

    __slots__ = ("x", "y")

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        self.x = float(x)
        self.y = float(y)

    def __repr__(self) -> str:
        return f"Vector2D({self.x:g}, {self.y:g})"

    def __iter__(self):
        yield self.x
        yield self.y

    def __add__(self, other: Vector2D) -> Vector2D:
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2D) -> Vector2D:
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2D:
        return Vector2D(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vector2D:
        return self.clone().divide(scalar)

    def __neg__(self) -> Vector2D:
        return Vector2D(-self.x, -self.y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector2D):
            return NotImplemented
        return self.equals(other)

    def set(self, x: float, y: float) -> Vector2D:
        self.x, self.y = float(x), float(y)
        return self

    def clone(self) -> Vector2D:
        return Vector2D(self.x, self.y)

    def add(self, other: Vector2D) -> Vector2D:
        self.x += other.x
        self.y += other.y
        return self

    def subtract(self, other: Vector2D) -> Vector2D:
        self.x -= other.x
        self.y -= other.y
        return self

    def multiply(self, scalar: float) -> Vector2D:
        self.x *= scalar
        self.y *= scalar
        return self

    def divide(self, scalar: float) -> Vector2D:
        """
        Divide both components by a scalar.

        Args:
            scalar: Divisor. A zero divisor leaves the vector untouched rather than producing inf/NaN.

        Returns:
            Vector2D: This vector.
        """

        if scalar != 0:
            self.x /= scalar
            self.y /= scalar
        return self

    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    def magnitude_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def normalize(self) -> Vector2D:
        """Scale to unit length in place. The zero vector is left as it is."""

        mag = self.magnitude()
        if mag > 0:
            self.divide(mag)
        return self

    def normalized(self) -> Vector2D:
        return self.clone().normalize()

    def dot(self, other: Vector2D) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Vector2D) -> float:
        """Z component of the 3D cross product (signed parallelogram area)."""

        return self.x * other.y - self.y * other.x

    def distance_to(self, other: Vector2D) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def angle(self) -> float:
        """Angle from the +x axis in radians, in (-pi, pi]."""

        return math.atan2(self.y, self.x)

    def angle_to(self, other: Vector2D) -> float:
        """
        Unsigned angle between this vector and another.

        Returns:
            float: Angle in radians, or 0.0 if either vector has zero length.
        """

        mags = self.magnitude() * other.magnitude()
        if mags == 0:
            return 0.0
        cos_theta = max(-1.0, min(1.0, self.dot(other) / mags))
        return math.acos(cos_theta)

    def rotate(self, angle: float) -> Vector2D:
        """Rotate in place by `angle` radians using the standard rotation matrix."""

        cos_a, sin_a = math.cos(angle), math.sin(angle)
        self.x, self.y = self.x * cos_a - self.y * sin_a, self.x * sin_a + self.y * cos_a
        return self

    def reflect(self, normal: Vector2D) -> Vector2D:
        """
        Mirror this vector off a surface, in place.

        Args:
            normal: Unit normal of the surface.

        Returns:
            Vector2D: This vector, now `v - 2(v.n)n`.
        """

        d = 2 * self.dot(normal)
        self.x -= d * normal.x
        self.y -= d * normal.y
        return self

    def clamp(self, minimum: Vector2D, maximum: Vector2D) -> Vector2D:
        """Clamp each component independently between the matching components of `minimum` and `maximum`."""

        self.x = max(minimum.x, min(maximum.x, self.x))
        self.y = max(minimum.y, min(maximum.y, self.y))
        return self

    def limit(self, max_magnitude: float) -> Vector2D:
        """Rescale to `max_magnitude` only if currently longer than that."""

        mag_sq = self.magnitude_squared()
        if mag_sq > max_magnitude * max_magnitude:
            self.normalize().multiply(max_magnitude)
        return self

    def lerp(self, target: Vector2D, t: float) -> Vector2D:
        self.x += (target.x - self.x) * t
        self.y += (target.y - self.y) * t
        return self

    def equals(self, other: Vector2D, tolerance: float = EPSILON) -> bool:
        return abs(self.x - other.x) < tolerance and abs(self.y - other.y) < tolerance

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> Vector2D:
        return cls(data["x"], data["y"])

    @classmethod
    def from_angle(cls, angle: float, magnitude: float = 1.0) -> Vector2D:
        return cls(math.cos(angle) * magnitude, math.sin(angle) * magnitude)

    @classmethod
    def random(cls) -> Vector2D:
        """Unit vector pointing in a uniformly random direction."""

        return cls.from_angle(random() * 2 * math.pi)

    @classmethod
    def zero(cls) -> Vector2D:
        return cls(0, 0)

    @classmethod
    def right(cls) -> Vector2D:
        return cls(1, 0)

    @classmethod
    def up(cls) -> Vector2D:
        # Screen coordinates: y grows downwards
        return cls(0, -1)
