"""
Closing Checklist Models

The checklist is the readiness gate in front of a close. Only critical
items can block; everything else is advisory.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from monthly_closing.errors import ProviderUnavailable


class ChecklistItemStatus(str, Enum):
    OK = "ok"
    PENDING = "pending"
    WARNING = "warning"


class ChecklistItem(BaseModel):
    """One readiness check."""

    id: str
    label: str
    status: ChecklistItemStatus
    message: Optional[str] = None
    action_link: Optional[str] = None
    critical: bool = False

    @property
    def is_blocking(self) -> bool:
        return self.critical and self.status == ChecklistItemStatus.PENDING


class ClosingChecklist(BaseModel):
    """
    Ordered checks plus the single ``can_close`` gate.

    ``provider_errors`` maps a provider name to its failure message. When
    every provider failed, ``items`` is empty and ``outage`` is set: this
    must never be read as "all clear".
    """

    items: list[ChecklistItem] = Field(default_factory=list)
    provider_errors: dict[str, str] = Field(default_factory=dict)
    outage: bool = False

    @computed_field
    @property
    def can_close(self) -> bool:
        if self.outage:
            return False
        return not any(item.is_blocking for item in self.items)

    @property
    def blocking_items(self) -> list[ChecklistItem]:
        return [item for item in self.items if item.is_blocking]

    @property
    def error(self) -> Optional[ProviderUnavailable]:
        """Side-channel error for a total provider outage."""
        if not self.outage:
            return None
        return ProviderUnavailable(providers=sorted(self.provider_errors))

    def get_item(self, item_id: str) -> Optional[ChecklistItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
