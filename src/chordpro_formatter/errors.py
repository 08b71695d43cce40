"""Exceptions raised by the formatting engine"""


class FormattingError(Exception):
    """Base class for formatting engine errors"""


class InvariantViolation(FormattingError):
    """A fix pass produced text that scores worse than its input"""

    def __init__(self, message: str, dimension: str = None):
        super().__init__(message)
        self.dimension = dimension


class OptionsError(FormattingError, ValueError):
    """Invalid formatting configuration"""
