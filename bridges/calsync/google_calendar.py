"""
Google Calendar Source

Lists events from Google Calendar using refresh-token OAuth credentials.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ..common.config import GoogleConfig
from ..common.schemas import CalendarEvent, format_timestamp

logger = logging.getLogger("bridges.calsync.google_calendar")

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


def build_calendar_service(google: GoogleConfig) -> Any:
    """
    Build an authenticated Calendar v3 service.

    The access token is obtained from the refresh token on first use.
    """
    if not google.refresh_token or not google.client_id or not google.client_secret:
        raise ValueError("Google client id, client secret and refresh token are required")

    credentials = Credentials(
        token=None,
        refresh_token=google.refresh_token,
        client_id=google.client_id,
        client_secret=google.client_secret,
        token_uri=TOKEN_URI,
        scopes=SCOPES,
    )
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


class GoogleCalendarSource:
    """Reads single (expanded) events in a time window, ordered by start time"""

    def __init__(self, service: Any, calendar_id: str = "primary", page_size: int = 250):
        self._service = service
        self._calendar_id = calendar_id
        self._page_size = page_size

    def list_events(self, time_min: datetime, time_max: datetime) -> List[CalendarEvent]:
        """All events starting in [time_min, time_max), across result pages"""
        events: List[CalendarEvent] = []
        page_token: Optional[str] = None

        while True:
            result = (
                self._service.events()
                .list(
                    calendarId=self._calendar_id,
                    timeMin=format_timestamp(time_min),
                    timeMax=format_timestamp(time_max),
                    singleEvents=True,
                    orderBy="startTime",
                    maxResults=self._page_size,
                    pageToken=page_token,
                )
                .execute()
            )

            for raw in result.get("items", []):
                if raw.get("status") == "cancelled":
                    continue
                try:
                    events.append(CalendarEvent.from_api(raw))
                except (KeyError, ValueError) as e:
                    logger.warning("Skipping malformed calendar event %s: %s", raw.get("id"), e)

            page_token = result.get("nextPageToken")
            if not page_token:
                return events
