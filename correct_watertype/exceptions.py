"""
Exceptions raised by the classification and correction engine.

Two families are distinguished:

- ``ConfigurationError`` and subclasses signal a wrong set-up (missing
  wavelengths, wrong vector lengths, unreadable auxiliary data). They abort
  the processing run for that configuration.
- ``NumericalError`` and subclasses signal a failure of a single pixel
  computation. Drivers mark the pixel invalid and continue.

Out-of-range inputs are not errors; they are reported as flag bits.
"""


class CorrectWatertypeError(Exception):
    """
    Base exception of the package.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(CorrectWatertypeError):
    """Invalid configuration or auxiliary data. Fatal for the run."""


class WavelengthNotFoundError(ConfigurationError):
    """
    A requested wavelength has no counterpart within tolerance.

    Attributes:
        wavelength: The wavelength that could not be matched [nm]
        max_distance: The matching tolerance [nm]
    """

    def __init__(self, wavelength: float, max_distance: float = None):
        message = f"Could not find appropriate wavelength ({wavelength:.3f}) in auxiliary data"
        details = {}
        if max_distance is not None:
            details["max_distance"] = max_distance
        super().__init__(message, details)
        self.wavelength = wavelength
        self.max_distance = max_distance


class DimensionMismatchError(ConfigurationError):
    """
    A vector does not have the length expected by its consumer.

    Attributes:
        expected: Expected length
        actual: Actual length
    """

    def __init__(self, expected: int, actual: int, what: str = "input"):
        message = f"Wrong {what} dimension: expected {expected}, got {actual}"
        super().__init__(message, {"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual


class AuxdataError(ConfigurationError):
    """Auxiliary data could not be loaded."""


class NumericalError(CorrectWatertypeError, ArithmeticError):
    """Failure of a numerical computation for a single pixel."""


class ConvergenceError(NumericalError):
    """An iterative expansion did not converge within its iteration limit."""


class SingularMatrixError(NumericalError):
    """A matrix could not be inverted (zero or near-zero pivot)."""


class InvalidInputError(NumericalError):
    """An input value lies outside the domain of a log/exp computation."""


class ClassificationError(NumericalError):
    """Class memberships could not be computed for a spectrum."""
