"""
Exceptions raised by the ticket mining engine.

Every error derives from MiningError so callers can handle the whole
family with a single except clause.
"""

from __future__ import annotations


class MiningError(Exception):
    """Base exception for the mining engine.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(MiningError):
    """Raised when a lexicon or settings file cannot be loaded."""


class InvalidParameterError(MiningError):
    """Raised when a caller-supplied parameter is out of range."""


class EmptyInputError(MiningError):
    """Raised when vectorized input has no documents or no vocabulary."""


class InsufficientHistoryError(MiningError):
    """Raised when a forecast is requested on too short a history.

    Attributes:
        minimum: Number of observations required.
        provided: Number of observations received.
    """

    def __init__(self, minimum: int, provided: int) -> None:
        self.minimum = minimum
        self.provided = provided
        super().__init__(
            f"Insufficient history: at least {minimum} points required, {provided} provided",
            {"minimum": minimum, "provided": provided},
        )


class ClusteringFitError(MiningError):
    """Raised when K-Means cannot be fitted for a given cluster count.

    Attributes:
        k: Cluster count whose fit failed.
    """

    def __init__(self, k: int, reason: str) -> None:
        self.k = k
        super().__init__(f"K-Means fit failed for k={k}: {reason}", {"k": k})
