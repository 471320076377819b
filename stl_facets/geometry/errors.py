"""Exceptions raised by triangle queries."""


class TriangleError(Exception):
    """Base class for errors reported by a Triangle."""


class InvalidStateError(TriangleError):
    """Operation called in the wrong construction phase.

    Raised for a fourth vertex, for queries on an incomplete triangle and
    for a signed-volume request before a normal is set.
    """


class DegenerateGeometryError(TriangleError):
    """A crossing edge has zero span along the slicing axis."""
