"""
Closing Engine Errors

DESIGN DECISION: The engine never returns localized messages or booleans
for failures. Every failure is one of five exceptions with a stable
``code`` that the presentation layer maps to its own wording.

    ProviderUnavailable   - an external data source failed
    ClosingBlocked        - the checklist gate refused the close
    InvalidCloseRequest   - close input the record cannot hold (over-long notes)
    InvalidReopenRequest  - reopen on a non-closed period / bad reason
    PersistenceFailure    - the transition could not be committed
"""

from typing import Any, Optional


class ClosingEngineError(Exception):
    """Base exception for the closing engine."""

    code = "closing_engine_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form for the presentation layer."""
        return {"code": self.code, "message": self.message}


class ProviderUnavailable(ClosingEngineError):
    """An external check or aggregation source failed."""

    code = "provider_unavailable"

    def __init__(self, providers: list[str], message: Optional[str] = None):
        self.providers = list(providers)
        super().__init__(
            message or f"Data source unavailable: {', '.join(self.providers)}"
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["providers"] = self.providers
        return data


class ClosingBlocked(ClosingEngineError):
    """Close attempted while the checklist does not allow it."""

    code = "closing_blocked"

    def __init__(self, blocking_items: list, message: Optional[str] = None):
        self.blocking_items = list(blocking_items)
        ids = ", ".join(item.id for item in self.blocking_items)
        super().__init__(message or f"Period cannot be closed yet: {ids}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["blocking_items"] = [
            item.model_dump(mode="json") for item in self.blocking_items
        ]
        return data


class InvalidCloseRequest(ClosingEngineError):
    """Close attempted with input that cannot be stored."""

    code = "invalid_close_request"


class InvalidReopenRequest(ClosingEngineError):
    """Reopen attempted on a non-closed period or without a reason."""

    code = "invalid_reopen_request"


class PersistenceFailure(ClosingEngineError):
    """
    The atomic transition could not be committed.

    ``compensated`` is False only when the rollback itself failed, which
    means the stored state needs manual inspection.
    """

    code = "persistence_failure"

    def __init__(self, message: str, compensated: bool = True):
        self.compensated = compensated
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["compensated"] = self.compensated
        return data
