class FocusError(Exception):
    """Base class for errors raised by the focus pipeline."""


class InsufficientDataError(FocusError):
    """Not enough samples or intervals to compute a result."""


class InvalidInputError(FocusError, ValueError):
    """Input rejected at a boundary (out-of-range HR, malformed feature vector)."""


class ClassifierError(FocusError):
    """The external classifier failed; engine state is left untouched."""
