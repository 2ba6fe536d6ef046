"""
Custom exceptions for the RO train design engine.

Input and configuration problems are raised before the solver starts
iterating. Numerical breakdown during iteration is fatal. Non-convergence
is NOT an error: it is reported through the result status.

Exception Hierarchy:
    ROTrainError (base)
    ├── InvalidInputError
    ├── ConfigurationError
    ├── InvalidOperatingPointError
    └── SolverError
"""

from typing import Any, Optional


class ROTrainError(Exception):
    """Base exception for all RO train errors."""
    pass


class InvalidInputError(ROTrainError, ValueError):
    """Out-of-domain physical input.

    Raised when:
    - A concentration or flow is negative
    - pH is outside [0, 14]
    - Temperature is at or below absolute zero
    - Recovery is outside [0, 1)
    """
    pass


class ConfigurationError(ROTrainError):
    """Unknown membrane model or empty/malformed topology."""
    pass


class InvalidOperatingPointError(ROTrainError):
    """Zero or negative feed flow reaching an element.

    Handled locally by the element model, which returns a zero-output
    element instead of propagating.
    """
    pass


class SolverError(ROTrainError):
    """Non-finite value detected during iteration.

    Attributes:
        last_state: The last stable iteration record (if any)
    """
    def __init__(self, message: str, last_state: Optional[Any] = None):
        super().__init__(message)
        self.last_state = last_state
