"""
Dashboard counters, the performance report and the merged schedule of
hearings and agenda events. Everything here is computed from records that
were already loaded, so the functions are pure.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from legalflow.dates import parse_timestamp, start_of_day
from legalflow.schemas import (
    AgendaEvent,
    ChartPoint,
    Client,
    DashboardSummary,
    LegalCase,
    PerformanceReport,
    ScheduleItem,
    UpcomingItem,
)
from legalflow.types import CaseOutcome, CasePriority, CaseStatus

MONTH_ABBREVIATIONS = (
    "Jan", "Fev", "Mar", "Abr", "Mai", "Jun",
    "Jul", "Ago", "Set", "Out", "Nov", "Dez",
)
UPCOMING_LIMIT = 5
SCHEDULE_FILTERS = ("all", "today", "week", "month", "overdue")

_FINISHED_STATUSES = (CaseStatus.CLOSED, CaseStatus.ARCHIVED)
_PRESSING_PRIORITIES = (CasePriority.HIGH, CasePriority.URGENT)
_FAVOURABLE_OUTCOMES = (CaseOutcome.WON, CaseOutcome.SETTLED)


def _event_moment(event: AgendaEvent) -> Optional[datetime]:
    return parse_timestamp(f"{event.date}T{event.time or '00:00'}:00")


def dashboard_summary(
    clients: Iterable[Client],
    cases: Iterable[LegalCase],
    events: Iterable[AgendaEvent],
    today: date,
) -> DashboardSummary:
    clients = list(clients)
    cases = list(cases)
    upcoming: list[tuple[datetime, UpcomingItem]] = []

    for event in events:
        moment = _event_moment(event)
        if moment is None:
            continue
        upcoming.append(
            (
                moment,
                UpcomingItem(
                    id=f"evt-{event.id}",
                    title=event.title,
                    date=event.date,
                    time=event.time,
                    type="agenda",
                ),
            )
        )

    for legal_case in cases:
        moment = parse_timestamp(legal_case.next_hearing)
        if moment is None:
            continue
        upcoming.append(
            (
                moment,
                UpcomingItem(
                    id=f"case-{legal_case.id}",
                    title=f"Audiência: {legal_case.title}",
                    date=moment.date().isoformat(),
                    time=moment.strftime("%H:%M"),
                    type="hearing",
                    case_id=legal_case.id,
                ),
            )
        )

    threshold = start_of_day(today)
    upcoming = sorted(
        (entry for entry in upcoming if entry[0] >= threshold),
        key=lambda entry: entry[0],
    )

    return DashboardSummary(
        total_clients=len(clients),
        active_cases=sum(1 for c in cases if c.status not in _FINISHED_STATUSES),
        pending_deadlines=sum(1 for c in cases if c.priority in _PRESSING_PRIORITIES),
        upcoming_events=len(upcoming),
        upcoming=[item for _, item in upcoming[:UPCOMING_LIMIT]],
    )


def win_rate(cases: Iterable[LegalCase]) -> int:
    """Percentage of decided cases that were won or settled, rounded half up."""
    decided = [c for c in cases if c.outcome]
    if not decided:
        return 0
    favourable = sum(1 for c in decided if c.outcome in _FAVOURABLE_OUTCOMES)
    return (200 * favourable + len(decided)) // (2 * len(decided))


def performance_report(
    cases: Iterable[LegalCase], clients: Iterable[Client], today: date
) -> PerformanceReport:
    cases = list(cases)

    new_clients = 0
    for client in clients:
        created = parse_timestamp(client.created_at)
        if created and (created.year, created.month) == (today.year, today.month):
            new_clients += 1

    by_type = Counter(c.case_type or "Outros" for c in cases)

    revenue: dict[int, float] = {}
    for legal_case in cases:
        created = parse_timestamp(legal_case.created_at)
        if not legal_case.fee or created is None:
            continue
        revenue[created.month] = revenue.get(created.month, 0.0) + legal_case.fee

    return PerformanceReport(
        total_revenue=sum(c.fee or 0.0 for c in cases),
        new_clients_this_month=new_clients,
        closed_cases=sum(1 for c in cases if c.status == CaseStatus.CLOSED),
        win_rate=win_rate(cases),
        cases_by_type=[ChartPoint(name=name, value=count) for name, count in by_type.items()],
        revenue_by_month=[
            ChartPoint(name=MONTH_ABBREVIATIONS[month - 1], value=revenue[month])
            for month in sorted(revenue)
        ],
    )


def schedule_badge(moment: Optional[datetime], now: datetime) -> str:
    if moment is None:
        return "Futuro"
    is_today = moment.date() == now.date()
    if moment < now and not is_today:
        return "Atrasado"
    if is_today:
        return "Hoje"
    if _days_from(moment, start_of_day(now.date())) <= 3:
        return "Próximo"
    return "Futuro"


def _days_from(moment: datetime, origin: datetime) -> int:
    return math.ceil((moment - origin) / timedelta(days=1))


def _matches_filter(moment: Optional[datetime], schedule_filter: str, now: datetime) -> bool:
    if schedule_filter == "all":
        return True
    if moment is None:
        return False
    today = start_of_day(now.date())
    same_day = moment.date() == today.date()
    days = _days_from(moment, today)
    if schedule_filter == "today":
        return same_day
    if schedule_filter == "week":
        return 0 <= days <= 7
    if schedule_filter == "month":
        return 0 <= days <= 30
    if schedule_filter == "overdue":
        return moment < today and not same_day
    return True


def build_schedule(
    cases: Iterable[LegalCase],
    clients: Iterable[Client],
    events: Iterable[AgendaEvent],
    now: datetime,
    schedule_filter: str = "all",
) -> list[ScheduleItem]:
    """
    Hearings of active cases and agenda events as one list sorted by date,
    narrowed by ``schedule_filter`` and labelled with an urgency badge.
    """
    names = {client.id: client.name for client in clients}
    entries: list[tuple[Optional[datetime], dict]] = []

    for legal_case in cases:
        if not legal_case.next_hearing:
            continue
        moment = parse_timestamp(legal_case.next_hearing)
        entries.append(
            (
                moment,
                dict(
                    id=legal_case.id,
                    title=f"Audiência: {legal_case.title}",
                    date=legal_case.next_hearing,
                    time=moment.strftime("%H:%M") if moment else None,
                    type="hearing",
                    source="case",
                    subtitle=(
                        f"Proc. {legal_case.case_number} | "
                        f"{names.get(legal_case.client_id, 'Cliente não encontrado')}"
                    ),
                    status=legal_case.status.value,
                    priority=legal_case.priority.value,
                ),
            )
        )

    for event in events:
        entries.append(
            (
                _event_moment(event),
                dict(
                    id=str(event.id),
                    title=event.title,
                    date=f"{event.date}T{event.time}:00",
                    time=event.time,
                    type=event.type,
                    source="agenda",
                    subtitle=(
                        f"Cliente: {event.client}"
                        if event.client
                        else f"Local: {event.location or 'N/A'}"
                    ),
                ),
            )
        )

    entries.sort(key=lambda entry: entry[0].timestamp() if entry[0] else math.inf)
    return [
        ScheduleItem(**values, badge=schedule_badge(moment, now))
        for moment, values in entries
        if _matches_filter(moment, schedule_filter, now)
    ]
