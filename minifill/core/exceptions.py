"""Custom exception hierarchy for the fill engine."""


class FillEngineError(Exception):
    """Base exception for fill engine failures."""


class DictionaryLoadError(FillEngineError):
    """Raised when no words can be loaded from any source file."""


class InvalidGridError(FillEngineError, ValueError):
    """Raised when a caller-supplied grid is malformed."""


class SlotPlacementError(FillEngineError):
    """Raised when a word cannot be written into a slot without a conflict."""


class InternalInvariantViolated(FillEngineError):
    """Raised on programmer errors; never expected in production."""


class UnknownSlotError(InternalInvariantViolated, KeyError):
    """Raised when a slot identifier does not exist in the grid."""

    def __init__(self, slot_id: str) -> None:
        super().__init__(slot_id)
        self.slot_id = slot_id

    def __str__(self) -> str:
        return f"Unknown slot id: {self.slot_id!r}"


class ValidationError(FillEngineError):
    """Raised when a completed fill fails the integrity checks."""
