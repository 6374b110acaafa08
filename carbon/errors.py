"""
Engine errors.

ValidationError is per-transaction: the engine collects it and keeps going.
ConfigurationError is fatal and raised when the engine is built.
"""


class CarbonEngineError(Exception):
    """Base class for everything the engine raises on purpose."""


class ValidationError(CarbonEngineError):
    """A single transaction failed validation."""

    def __init__(self, transaction_id, reason: str):
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(f"{transaction_id or '<no id>'}: {reason}")


class ConfigurationError(CarbonEngineError):
    """Factor table, baseline or another setting is missing or invalid."""


class IngestionError(CarbonEngineError):
    """A batch file could not be read at all."""
