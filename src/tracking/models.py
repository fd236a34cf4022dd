# src/tracking/models.py — v1
"""Pushed-state models: which sections were published, and where."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SectionStatus = Literal["unpublished", "published"]


class TicketLink(BaseModel):
    """External ticket a published section is attached to."""

    ticket_key: str
    base_url: str

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/browse/{self.ticket_key}"


class PushedStateUpdate(BaseModel):
    """Payload of a full pushed-state replace."""

    pushed_sections: set[int] = Field(default_factory=set)
    external_ids: dict[int, list[str]] = Field(default_factory=dict)
    ticket_links: dict[int, TicketLink] = Field(default_factory=dict)


class PushedState(PushedStateUpdate):
    """Persisted pushed state of one document."""

    document_name: str
    timestamp: datetime

    def status(self, section: int) -> SectionStatus:
        return "published" if section in self.pushed_sections else "unpublished"

    def is_published(self, section: int) -> bool:
        return section in self.pushed_sections
