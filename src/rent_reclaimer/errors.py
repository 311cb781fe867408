from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A required input file is missing or holds an unusable value."""


class TransientNetworkError(RuntimeError):
    """An RPC call, submission or confirmation failed."""


class InsufficientFundsError(RuntimeError):
    """A pre-flight balance check failed; nothing was sent."""

    def __init__(self, message: str, *, balance: int, required: int) -> None:
        super().__init__(message)
        self.balance = balance
        self.required = required


class ValidationError(ValueError):
    """Bad operator input (amount, address, confirmation)."""


# Failures isolated per item or per wallet; anything else propagates.
RECOVERABLE_ERRORS = (TransientNetworkError, ValueError)
