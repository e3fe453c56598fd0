"""Exception hierarchy for seam carving."""


class SeamCarvingError(Exception):
    """Base exception for all seam carving errors."""


class MalformedRequestError(SeamCarvingError, ValueError):
    """Raised when a request has missing or non-positive dimensions, or a
    pixel buffer that does not match its declared dimensions."""


class OutOfRangeError(SeamCarvingError, ValueError):
    """Raised when an operation would drive a buffer extent to zero or below."""


class EnergyProviderUnavailableError(SeamCarvingError, RuntimeError):
    """Raised when an accelerated luminance provider cannot be initialised."""
