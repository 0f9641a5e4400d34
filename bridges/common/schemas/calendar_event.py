"""
Calendar Event Schema

Normalized view of a Google Calendar event as used by the calendar sync.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def parse_event_time(value: Dict[str, Any]) -> Optional[datetime]:
    """
    Parse a Google Calendar start/end object.

    Timed events carry ``dateTime``; all-day events carry ``date`` and are
    taken as midnight UTC.
    """
    raw = value.get("dateTime") or value.get("date")
    if not raw:
        return None
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class CalendarEvent:
    """A calendar event with both parsed and raw start/end values"""
    id: str
    summary: str = ""
    description: str = ""
    location: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    start_raw: str = ""
    end_raw: str = ""
    all_day: bool = False
    attendees: List[str] = field(default_factory=list)
    html_link: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CalendarEvent":
        """Build from a Google Calendar API event resource"""
        start = data.get("start", {})
        end = data.get("end", {})
        return cls(
            id=data["id"],
            summary=data.get("summary", ""),
            description=data.get("description", ""),
            location=data.get("location", ""),
            start=parse_event_time(start),
            end=parse_event_time(end),
            start_raw=start.get("dateTime") or start.get("date", ""),
            end_raw=end.get("dateTime") or end.get("date", ""),
            all_day="dateTime" not in start,
            attendees=[a["email"] for a in data.get("attendees", []) if a.get("email")],
            html_link=data.get("htmlLink"),
        )

    @property
    def title(self) -> str:
        return self.summary or "Untitled Event"

    @property
    def text(self) -> str:
        """Text used for category classification"""
        return f"{self.summary}\n{self.description}".strip()

    def hours_until(self, now: datetime) -> Optional[float]:
        if self.start is None:
            return None
        return (self.start - now).total_seconds() / 3600
