"""
Ledger Errors

Every failure the ledger reports to its callers is one of these.
Storage-level failures live in ledger.services.storage.interface.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger rule violations."""
    pass


class ValidationError(LedgerError):
    """Invalid user input (non-positive amount, blank name, ...)."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = issues or []
        super().__init__(message)


class EntityNotFoundError(LedgerError):
    """The entity an update or delete targets does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ReferencedEntityError(LedgerError):
    """Delete blocked because transactions still reference the entity."""

    def __init__(self, entity_type: str, entity_id: str, reference_count: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reference_count = reference_count
        super().__init__(
            f"Cannot delete {entity_type} {entity_id}: "
            f"{reference_count} transaction(s) still reference it"
        )


class ProtectedEntityError(LedgerError):
    """Delete blocked because the entity is a system default."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Cannot delete system {entity_type} {entity_id}")


class LastEntityGuardError(LedgerError):
    """Delete blocked because it would remove the last remaining account."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Cannot delete the last remaining {entity_type}")
