from __future__ import annotations

from typing import Dict, Optional


class StaffingError(Exception):
    """Base class for every error raised by the staffing package."""


class ValidationError(StaffingError, ValueError):
    """Malformed input. ``errors`` maps each offending field to a message."""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        super().__init__(message or "; ".join(f"{field}: {text}" for field, text in self.errors.items()))


class ConflictError(StaffingError):
    pass


class NotFoundError(StaffingError, KeyError):
    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")

    def __str__(self) -> str:
        return self.args[0]


class ResolutionError(StaffingError):
    """No billing rate could be determined."""


class PersistenceError(StaffingError):
    pass
