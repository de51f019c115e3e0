class EngineError(Exception):
    """Base exception for all engine-related errors."""


class EngineInitializationError(EngineError):
    """Raised when the engine cannot be constructed."""


class EngineTimeoutError(EngineError):
    """Raised when a transform does not finish within the configured bound."""
