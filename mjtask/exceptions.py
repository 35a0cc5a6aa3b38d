"""Exceptions raised by mjtask."""


class MjtaskError(Exception):
    """Base class for mjtask exceptions."""


class SizeMismatch(MjtaskError, ValueError):
    """Exception raised when a caller-provided buffer or configuration has the wrong size."""

    def __init__(self, what: str, expected: tuple[int, ...], got: tuple[int, ...]):
        super().__init__(f"wrong size of {what}: expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class ConfigurationError(MjtaskError, ValueError):
    """Exception raised when a task map, problem or composition input is malformed."""


class UnknownTaskMapWarning(UserWarning):
    """Warning emitted when a re-composition entry names an unregistered task map class."""
