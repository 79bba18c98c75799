"""Domain models for tk_event: read-only view of the event catalogue."""

from dataclasses import dataclass
from datetime import datetime

from src.tk_common.enums import EventStatus


@dataclass
class Event:
    id: str
    name: str
    venue: str | None
    status: str
    starts_at: datetime

    @property
    def is_upcoming(self) -> bool:
        return self.status == EventStatus.UPCOMING
