import unittest

from legalflow import case_history, cases, clients
from legalflow.db import InMemoryDbClient
from legalflow.errors import BackendError
from legalflow.schemas import CaseHistoryPayload, CasePayload, ClientPayload
from legalflow.types import CaseOutcome, HistoryType


class SplitCaseDescriptionTests(unittest.TestCase):
    def test_plain_description(self):
        self.assertEqual(cases.split_case_description("Texto"), ("Texto", {}))
        self.assertEqual(cases.split_case_description(None), (None, {}))

    def test_legacy_metadata(self):
        stored = 'Cobrança\n\n__META_DATA__{"value": 1000, "fee": 150, "outcome": "won"}'
        text, meta = cases.split_case_description(stored)
        self.assertEqual(text, "Cobrança")
        self.assertEqual(meta, {"value": 1000, "fee": 150, "outcome": "won"})

    def test_broken_metadata(self):
        with self.assertLogs("legalflow.cases", level="WARNING"):
            text, meta = cases.split_case_description("Texto\n\n__META_DATA__{oops")
        self.assertEqual((text, meta), ("Texto", {}))


class CaseServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.client = clients.create_client(
            self.db, ClientPayload(name="Maria"), user_id="u1"
        )

    def _case(self, **extra):
        values = {"client_id": self.client.id, "case_number": "0001", "title": "Cobrança"}
        values.update(extra)
        return cases.create_case(self.db, CasePayload(**values), user_id="u1")

    def test_legacy_row_is_lifted(self):
        created = self._case()
        self.db.update(
            "legal_cases",
            created.id,
            {"description": 'Resumo\n\n__META_DATA__{"fee": 300, "outcome": "settled"}'},
        )
        legal_case = cases.get_case(self.db, created.id)
        self.assertEqual(legal_case.description, "Resumo")
        self.assertEqual(legal_case.fee, 300)
        self.assertEqual(legal_case.outcome, CaseOutcome.SETTLED)

    def test_legacy_metadata_of_the_wrong_shape_is_ignored(self):
        created = self._case()
        self.db.update(
            "legal_cases",
            created.id,
            {"description": 'Resumo\n\n__META_DATA__{"outcome": ["won"], "fee": "300"}'},
        )
        listed = cases.list_cases(self.db)
        self.assertEqual(len(listed), 1)
        self.assertIsNone(listed[0].outcome)
        self.assertIsNone(listed[0].fee)
        self.assertEqual(listed[0].description, "Resumo")

    def test_list_annotates_client_and_searches(self):
        self._case()
        self._case(case_number="0002", title="Despejo")
        found = cases.list_cases(self.db, "despejo")
        self.assertEqual([c.case_number for c in found], ["0002"])
        self.assertEqual(found[0].client_name, "Maria")

    def test_update_missing_case(self):
        payload = CasePayload(client_id=self.client.id, case_number="1", title="X")
        with self.assertRaises(BackendError) as ctx:
            cases.update_case(self.db, "missing", payload)
        self.assertEqual(ctx.exception.code, "PGRST116")

    def test_timeline_merges_history_and_derived_events(self):
        legal_case = self._case(next_hearing="2999-01-01T10:30:00+00:00", outcome="won")
        case_history.add_history_item(
            self.db,
            legal_case.id,
            CaseHistoryPayload(title="Contestação", type="petition", date="2998-06-01"),
            user_id="u1",
        )

        timeline = cases.case_timeline(self.db, legal_case.id)

        self.assertEqual(timeline[-1].id, "auto-hearing-scheduled")
        by_id = {item.id: item for item in timeline}
        self.assertEqual(by_id["auto-client-creation"].type, HistoryType.SYSTEM)
        self.assertEqual(
            by_id["auto-client-creation"].description, "Cadastro inicial do cliente Maria."
        )
        self.assertEqual(by_id["auto-case-outcome"].title, "Sentença Proferida")
        self.assertEqual(by_id["auto-case-outcome"].description, "Desfecho: Procedente (Ganho).")
        self.assertEqual(by_id["auto-hearing-scheduled"].description, "Agendada para 10:30.")
        self.assertTrue(all(item.is_system_event for item in timeline if item.id.startswith("auto-")))
        self.assertEqual(timeline[-2].title, "Contestação")

    def test_timeline_of_unknown_case(self):
        with self.assertRaises(BackendError):
            cases.case_timeline(self.db, "missing")


class CaseHistoryTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        client = clients.create_client(self.db, ClientPayload(name="Maria"), user_id=None)
        self.case = cases.create_case(
            self.db,
            CasePayload(client_id=client.id, case_number="1", title="Ação"),
            user_id=None,
        )

    def test_history_is_newest_first(self):
        for day in ("2024-01-01", "2024-03-01", "2024-02-01"):
            case_history.add_history_item(
                self.db, self.case.id, CaseHistoryPayload(title=day, date=day), None
            )
        items = case_history.list_history(self.db, self.case.id)
        self.assertEqual([item.date for item in items], ["2024-03-01", "2024-02-01", "2024-01-01"])
        self.assertEqual(items[0].type, HistoryType.NOTE)

    def test_missing_table_gives_empty_history(self):
        self.db.drop_table("case_history")
        with self.assertLogs("legalflow.case_history", level="WARNING"):
            self.assertEqual(case_history.list_history(self.db, self.case.id), [])

    def test_history_is_removed_with_case(self):
        case_history.add_history_item(
            self.db, self.case.id, CaseHistoryPayload(title="Nota", date="2024-01-01"), None
        )
        self.db.delete("legal_cases", self.case.id)
        self.assertEqual(self.db.select("case_history"), [])


if __name__ == "__main__":
    unittest.main()
