"""
Agenda events. Rows store a single ``event_date`` timestamp; the API splits
it into a calendar date and an HH:MM time.
"""

from __future__ import annotations

import logging
from typing import Optional

from legalflow.dates import parse_timestamp, utc_now_iso
from legalflow.db import DbClient
from legalflow.schemas import AgendaEvent, AgendaEventPayload
from legalflow.types import AgendaEventType

logger = logging.getLogger(__name__)

TABLE = "agenda_events"


def to_agenda_event(row: dict) -> AgendaEvent:
    moment = parse_timestamp(row.get("event_date"))
    if moment is None:
        raise ValueError(f"Unreadable event_date {row.get('event_date')!r}")
    return AgendaEvent(
        id=str(row["id"]),
        title=row["title"],
        date=moment.date().isoformat(),
        time=moment.strftime("%H:%M"),
        client=row.get("client") or "N/A",
        type=row.get("event_type") or AgendaEventType.MEETING.value,
        location=row.get("location") or "",
        created_at=row.get("created_at"),
    )


def list_events(db: DbClient) -> list[AgendaEvent]:
    events = []
    for row in db.select(TABLE):
        try:
            events.append(to_agenda_event(row))
        except ValueError:
            logger.warning("Skipping agenda event %s with unreadable date", row.get("id"))
    return sorted(events, key=lambda event: event.date)


def add_event(
    db: DbClient, payload: AgendaEventPayload, user_id: Optional[str]
) -> AgendaEvent:
    row = db.insert(
        TABLE,
        {
            "title": payload.title,
            "event_date": f"{payload.date}T{payload.time or '00:00'}:00Z",
            "event_type": payload.type.value,
            "location": payload.location,
            "client": payload.client or None,
            "client_id": None,
            "created_by": user_id,
            "created_at": utc_now_iso(),
        },
    )
    return to_agenda_event(row)


def delete_event(db: DbClient, event_id: str) -> bool:
    return db.delete(TABLE, event_id)
