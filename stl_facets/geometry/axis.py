"""Coordinate axes used for slicing planes and bounds lookup."""

from enum import Enum
from typing import Tuple, Union

import numpy as np


class Axis(Enum):
    """Coordinate axis; value is the lowercase name."""
    X = "x"
    Y = "y"
    Z = "z"

    @property
    def index(self) -> int:
        """Column of this axis in an (N, 3) vertex array."""
        return _AXIS_INDEX[self]

    @property
    def unit(self) -> np.ndarray:
        """Unit vector along the axis."""
        vec = np.zeros(3, dtype=np.float64)
        vec[self.index] = 1.0
        return vec

    @property
    def plane_axes(self) -> Tuple['Axis', 'Axis']:
        """The two axes spanning a plane normal to this one, in x-y-z order."""
        return _PLANE_AXES[self]

    @classmethod
    def coerce(cls, axis: Union['Axis', str]) -> 'Axis':
        """Accept an Axis member or its name in either case.

        Raises:
            ValueError: unknown axis name
        """
        if isinstance(axis, cls):
            return axis
        try:
            return cls(str(axis).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown axis: {axis!r} (expected x, y or z)") from None


_AXIS_INDEX = {Axis.X: 0, Axis.Y: 1, Axis.Z: 2}

_PLANE_AXES = {
    Axis.X: (Axis.Y, Axis.Z),
    Axis.Y: (Axis.X, Axis.Z),
    Axis.Z: (Axis.X, Axis.Y),
}
