"""
Exception hierarchy for the territory engine.

Nothing here is fatal to the process: every error maps to a session state
transition plus a descriptive value the host can show to the player.
"""


class TerritoryEngineError(Exception):
    """Base class for all engine errors."""


class SessionStateError(TerritoryEngineError):
    """Raised on an illegal session state transition."""

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class SessionActiveError(SessionStateError):
    """Raised when starting a session while another one is tracking."""


class ClaimRejectedError(TerritoryEngineError):
    """Raised when confirming a claim that failed validation or collision checks."""

    def __init__(self, message: str, territory_id: str | None = None):
        super().__init__(message)
        self.territory_id = territory_id


class RepositoryError(TerritoryEngineError):
    """
    Raised when the territory repository fails to load or save.

    Always retryable from the engine's point of view: the in-memory path
    is kept so the player can retry without walking the loop again.
    """

    def __init__(self, message: str, operation: str = "", cause: Exception | None = None):
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class ConfigValidationError(TerritoryEngineError):
    """Raised when config validation fails."""
