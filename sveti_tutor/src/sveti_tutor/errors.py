"""
Exceptions raised by the Sveti tutor core.
"""


class SvetiError(Exception):
    """Base class for tutor errors."""


class ConfigurationError(SvetiError):
    """Raised when a required setting (e.g. OPENAI_API_KEY) is missing."""


class StorageError(SvetiError):
    """Raised by storage backends; caught at the store/gate boundary."""


class InvalidTransitionError(SvetiError):
    """Raised when the personalization state is asked to make an illegal move."""

    def __init__(self, stage, action: str):
        self.stage = stage
        self.action = action
        super().__init__(f"Cannot {action} while personalization is {stage.value}")


class RequestInFlightError(SvetiError):
    """Raised when a message is submitted while another one is being answered."""
