import unittest
from datetime import date, datetime, timezone

from legalflow import reports
from legalflow.schemas import AgendaEvent, Client, LegalCase

TS = "2024-05-01T12:00:00+00:00"


def make_client(client_id="c1", name="Maria", created_at=TS):
    return Client(
        id=client_id,
        name=name,
        status="active",
        created_at=created_at,
        updated_at=created_at,
    )


def make_case(case_id="k1", **extra):
    values = dict(
        id=case_id,
        client_id="c1",
        case_number="0001",
        title="Cobrança",
        created_at=TS,
        updated_at=TS,
    )
    values.update(extra)
    return LegalCase(**values)


def make_event(event_id="e1", day="2024-05-10", time="09:00", **extra):
    values = dict(
        id=event_id,
        title="Reunião",
        date=day,
        time=time,
        client="N/A",
        type="meeting",
        location="",
    )
    values.update(extra)
    return AgendaEvent(**values)


class DashboardSummaryTests(unittest.TestCase):
    def test_counts_and_upcoming(self):
        cases = [
            make_case("k1", priority="urgent", next_hearing="2024-05-03T14:00:00+00:00"),
            make_case("k2", status="closed", priority="high"),
            make_case("k3", status="archived", next_hearing="2024-04-01T10:00:00+00:00"),
        ]
        events = [
            make_event("e1", "2024-05-02", "08:30"),
            make_event("e2", "2024-04-30", "08:30"),
            make_event("e3", "2024-05-01", "00:00"),
        ]

        summary = reports.dashboard_summary([make_client()], cases, events, date(2024, 5, 1))

        self.assertEqual(summary.total_clients, 1)
        self.assertEqual(summary.active_cases, 1)
        self.assertEqual(summary.pending_deadlines, 2)
        self.assertEqual(summary.upcoming_events, 3)
        self.assertEqual(
            [item.id for item in summary.upcoming], ["evt-e3", "evt-e1", "case-k1"]
        )
        hearing = summary.upcoming[2]
        self.assertEqual(hearing.title, "Audiência: Cobrança")
        self.assertEqual((hearing.date, hearing.time), ("2024-05-03", "14:00"))
        self.assertEqual(hearing.case_id, "k1")

    def test_upcoming_is_capped(self):
        events = [make_event(f"e{i}", f"2024-05-{10 + i}") for i in range(7)]
        summary = reports.dashboard_summary([], [], events, date(2024, 5, 1))
        self.assertEqual(summary.upcoming_events, 7)
        self.assertEqual(len(summary.upcoming), reports.UPCOMING_LIMIT)


class PerformanceReportTests(unittest.TestCase):
    def test_report(self):
        cases = [
            make_case("k1", fee=1000, outcome="won", case_type="Cível", created_at="2024-01-15T00:00:00+00:00"),
            make_case("k2", fee=500, outcome="lost", status="closed", created_at="2023-01-20T00:00:00+00:00"),
            make_case("k3", fee=250, outcome="settled", case_type="Cível", created_at="2024-03-02T00:00:00+00:00"),
            make_case("k4"),
        ]
        clients = [
            make_client("c1", created_at="2024-05-02T00:00:00+00:00"),
            make_client("c2", created_at="2023-05-02T00:00:00+00:00"),
        ]

        report = reports.performance_report(cases, clients, date(2024, 5, 20))

        self.assertEqual(report.total_revenue, 1750)
        self.assertEqual(report.new_clients_this_month, 1)
        self.assertEqual(report.closed_cases, 1)
        self.assertEqual(report.win_rate, 67)
        self.assertEqual(
            {point.name: point.value for point in report.cases_by_type},
            {"Cível": 2, "Outros": 2},
        )
        self.assertEqual(
            [(point.name, point.value) for point in report.revenue_by_month],
            [("Jan", 1500), ("Mar", 250)],
        )

    def test_win_rate_rounds_half_up(self):
        cases = [make_case("a", outcome="won"), make_case("b", outcome="lost")]
        self.assertEqual(reports.win_rate(cases), 50)
        cases = [make_case(str(i), outcome="won" if i < 1 else "lost") for i in range(8)]
        self.assertEqual(reports.win_rate(cases), 13)
        self.assertEqual(reports.win_rate([make_case()]), 0)


class ScheduleTests(unittest.TestCase):
    NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)

    def setUp(self):
        self.cases = [
            make_case("k1", next_hearing="2024-05-10T15:00:00+00:00", case_number="77"),
            make_case("k2", client_id="gone", next_hearing="2024-05-01T09:00:00+00:00"),
            make_case("k3"),
        ]
        self.events = [
            make_event("e1", "2024-05-12", "10:00", client=""),
            make_event("e2", "2024-06-30", "10:00", location="Fórum"),
        ]
        self.clients = [make_client()]

    def test_all_items_sorted_with_badges(self):
        items = reports.build_schedule(self.cases, self.clients, self.events, self.NOW)

        self.assertEqual([item.id for item in items], ["k2", "k1", "e1", "e2"])
        self.assertEqual(
            [item.badge for item in items], ["Atrasado", "Hoje", "Próximo", "Futuro"]
        )
        self.assertEqual(items[1].subtitle, "Proc. 77 | Maria")
        self.assertEqual(items[0].subtitle, "Proc. 0001 | Cliente não encontrado")
        self.assertEqual(items[2].subtitle, "Local: N/A")
        self.assertEqual(items[1].source, "case")
        self.assertEqual(items[2].date, "2024-05-12T10:00:00")

    def test_filters(self):
        def ids(schedule_filter):
            return [
                item.id
                for item in reports.build_schedule(
                    self.cases, self.clients, self.events, self.NOW, schedule_filter
                )
            ]

        self.assertEqual(ids("today"), ["k1"])
        self.assertEqual(ids("week"), ["k1", "e1"])
        self.assertEqual(ids("month"), ["k1", "e1"])
        self.assertEqual(ids("overdue"), ["k2"])


if __name__ == "__main__":
    unittest.main()
