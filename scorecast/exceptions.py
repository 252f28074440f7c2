"""
Custom exceptions for the score prediction engine.

Provides a small hierarchy so callers can tell apart bad input,
an unreachable result provider and unknown prediction ids.

Usage:
    from scorecast.exceptions import ValidationError, NotFoundError

    try:
        service.create_prediction(form_data)
    except ValidationError as e:
        print(f"Invalid match data: {e}")
"""

from typing import List, Optional


class ScorecastError(Exception):
    """
    Base exception for all engine errors.

    All custom exceptions inherit from this, allowing:
        except ScorecastError:
            # Catch any engine error
    """
    pass


# =============================================================================
# INPUT ERRORS
# =============================================================================

class ValidationError(ScorecastError):
    """
    Malformed or insufficient input.

    Raised when:
    - Odds lists have fewer valid entries than required
    - A score string is not of the form "H-A"
    - A terminal prediction is given a different actual score
    """

    def __init__(self, message: str, field: Optional[str] = None, errors: Optional[List[str]] = None):
        self.field = field
        self.errors = list(errors or [])
        msg = message
        if field:
            msg = f"{field}: {message}"
        if self.errors:
            msg += " (" + "; ".join(self.errors) + ")"
        super().__init__(msg)


class NotFoundError(ScorecastError):
    """
    Unknown prediction id on read, update or check.
    """

    def __init__(self, prediction_id):
        self.prediction_id = prediction_id
        super().__init__(f"Prediction not found: {prediction_id}")


# =============================================================================
# LOOKUP ERRORS
# =============================================================================

class LookupFailure(ScorecastError):
    """
    Error fetching a match result from the result provider.

    Raised when:
    - The provider is unreachable or times out
    - The provider answers with an error status code

    The prediction service catches this and returns a degraded result.
    """

    def __init__(self, source: str, message: str = None, original_error: Exception = None):
        self.source = source
        self.original_error = original_error
        msg = f"Error fetching from {source}"
        if message:
            msg += f": {message}"
        if original_error:
            msg += f" (caused by: {type(original_error).__name__}: {original_error})"
        super().__init__(msg)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(ScorecastError):
    """
    Configuration or setup error.

    Raised when:
    - A configuration value is out of its allowed range
    - A required setting for a component is missing
    """

    def __init__(self, setting: str, message: str):
        self.setting = setting
        super().__init__(f"Configuration error ({setting}): {message}")
