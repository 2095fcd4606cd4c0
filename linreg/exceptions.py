"""
Exception hierarchy for linreg.

All exceptions inherit from LinregError so callers can catch any
library-specific error. ValidationError subclasses describe bad caller
input and carry a message that is safe to show to the caller; StoreError
hides the underlying database failure behind a generic message.
"""

from typing import Optional


class LinregError(Exception):
    """Base exception for all linreg errors."""
    pass


class ValidationError(LinregError):
    """
    Input validation failed.

    Raised before any state is touched, so the operation can be retried
    with corrected input.
    """
    pass


class InsufficientData(ValidationError):
    """Fewer than two points were supplied."""
    pass


class NonFiniteValue(ValidationError):
    """
    A coordinate is NaN or infinite.

    Attributes:
        index: 1-based position of the offending point
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class DegenerateInput(ValidationError):
    """All x values are identical, so the slope is undefined."""
    pass


class InvalidPoint(ValidationError):
    """
    A point is not an (x, y) pair of real numbers.

    Attributes:
        index: 1-based position of the offending point
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class NumericOverflow(ValidationError):
    """Finite input whose sums or fitted line exceed the float range."""
    pass


class InvalidDatasetName(ValidationError):
    """Dataset name is empty or too long."""
    pass


class StoreError(LinregError):
    """
    The dataset store failed.

    The transaction has been rolled back. The original exception is
    chained as ``__cause__`` for logging but never exposed in the message.
    """

    def __init__(self, message: str = "Dataset store operation failed"):
        super().__init__(message)
