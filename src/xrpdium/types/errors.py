"""Exception hierarchy for the powder-pattern engine.

Routine Listings
----------------
XrpdiumError : exception
    Base class for every error raised by xrpdium
GeometryError : exception
    A lattice or reflection is geometrically impossible
ConversionError : exception
    A displacement tensor cannot be converted between conventions
NumericalError : exception
    An iterative numerical routine failed to converge
DomainError : exception
    Input data lies outside the domain a routine assumes

Notes
-----
The concrete errors also derive from the closest built-in exception, so
callers catching ``ValueError`` keep working.
"""


class XrpdiumError(Exception):
    """Base class for all xrpdium errors."""


class GeometryError(XrpdiumError, ValueError):
    """Raised for degenerate cells and unobservable reflections."""


class ConversionError(XrpdiumError, ValueError):
    """Raised for malformed anisotropic displacement tensors."""


class NumericalError(XrpdiumError, ArithmeticError):
    """Raised when an iterative solver does not converge."""


class DomainError(XrpdiumError, ValueError):
    """Raised when a pattern grid is not uniform."""
