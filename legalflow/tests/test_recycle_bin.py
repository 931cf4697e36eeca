import unittest

from legalflow import recycle_bin
from legalflow.db import InMemoryDbClient
from legalflow.schemas import RecycleBinItem
from legalflow.storage import InMemoryStorageClient
from legalflow.types import RecycleSource

NOW = "2024-05-01T12:00:00+00:00"


def _client_row(name="Maria"):
    return {"name": name, "status": "active", "created_at": NOW, "updated_at": NOW}


def _case_row(client_id, title="Ação"):
    return {
        "client_id": client_id,
        "case_number": "0001",
        "title": title,
        "status": "open",
        "priority": "medium",
        "created_at": NOW,
        "updated_at": NOW,
    }


class RecycleBinRpcTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.client = self.db.insert("clients", _client_row())

    def test_move_uses_rpc_and_records_snapshot(self):
        result = recycle_bin.move_to_recycle_bin(
            self.db, "clients", self.client["id"], reason="duplicado", deleted_by="u1"
        )
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Item arquivado com sucesso")
        self.assertEqual(self.db.rpc_calls[0][0], "move_to_recycle_bin")

        entries = self.db.select("recycle_bin")
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["item_name"], "Maria")
        self.assertEqual(entries[0]["reason"], "duplicado")
        self.assertEqual(entries[0]["data"]["name"], "Maria")
        self.assertIsNotNone(self.db.get("clients", self.client["id"])["deleted_at"])

    def test_client_delete_cascades_to_active_cases(self):
        active = self.db.insert("legal_cases", _case_row(self.client["id"]))
        already = self.db.insert(
            "legal_cases", {**_case_row(self.client["id"], "Antigo"), "deleted_at": NOW}
        )

        result = recycle_bin.move_to_recycle_bin(self.db, "clients", self.client["id"])

        self.assertTrue(result.success)
        self.assertIsNotNone(self.db.get("legal_cases", active["id"])["deleted_at"])
        self.assertEqual(self.db.get("legal_cases", already["id"])["deleted_at"], NOW)
        tables = sorted(entry["original_table"] for entry in self.db.select("recycle_bin"))
        self.assertEqual(tables, ["clients", "legal_cases"])

    def test_restore_with_bin_id_uses_rpc(self):
        recycle_bin.move_to_recycle_bin(self.db, "clients", self.client["id"])
        entry = self.db.select("recycle_bin")[0]

        result = recycle_bin.restore_from_recycle_bin(
            self.db, self.client["id"], "clients", recycle_bin_id=entry["id"]
        )

        self.assertTrue(result.success)
        self.assertEqual(self.db.rpc_calls[-1][0], "restore_from_recycle_bin")
        self.assertIsNone(self.db.get("clients", self.client["id"])["deleted_at"])
        self.assertEqual(self.db.select("recycle_bin"), [])

    def test_invalid_table_is_rejected(self):
        result = recycle_bin.move_to_recycle_bin(self.db, "profiles", "x")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Erro ao excluir item")
        self.assertEqual(self.db.rpc_calls, [])


class RecycleBinFallbackTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient(enable_rpc=False)
        self.client = self.db.insert("clients", _client_row())

    def test_move_falls_back_to_soft_delete(self):
        with self.assertLogs("legalflow.recycle_bin", level="WARNING"):
            result = recycle_bin.move_to_recycle_bin(self.db, "clients", self.client["id"])

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Item movido para a lixeira")
        self.assertIsNotNone(self.db.get("clients", self.client["id"])["deleted_at"])
        self.assertEqual(self.db.select("recycle_bin"), [])

    def test_move_of_missing_record_fails(self):
        result = recycle_bin.move_to_recycle_bin(self.db, "clients", "missing")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Erro ao excluir item")
        self.assertEqual(result.error, "Registro não encontrado.")

    def test_fallback_cascades_to_cases(self):
        legal_case = self.db.insert("legal_cases", _case_row(self.client["id"]))
        recycle_bin.move_to_recycle_bin(self.db, "clients", self.client["id"])
        self.assertIsNotNone(self.db.get("legal_cases", legal_case["id"])["deleted_at"])

    def test_manual_restore_clears_deleted_at_and_bin_rows(self):
        self.db.update("clients", self.client["id"], {"deleted_at": NOW})
        self.db.insert(
            "recycle_bin",
            {
                "original_table": "clients",
                "original_id": self.client["id"],
                "deleted_at": NOW,
            },
        )

        result = recycle_bin.restore_from_recycle_bin(
            self.db, self.client["id"], "clients", recycle_bin_id="stale"
        )

        self.assertTrue(result.success)
        self.assertIsNone(self.db.get("clients", self.client["id"])["deleted_at"])
        self.assertEqual(self.db.select("recycle_bin"), [])

    def test_manual_restore_of_missing_record_fails(self):
        result = recycle_bin.restore_from_recycle_bin(self.db, "missing", "clients")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Erro ao restaurar")
        self.assertEqual(result.error, "Registro não encontrado.")

    def test_manual_restore_needs_table_name(self):
        result = recycle_bin.restore_from_recycle_bin(self.db, self.client["id"])
        self.assertFalse(result.success)
        self.assertEqual(
            result.message, "Identificação da tabela necessária para restauração manual."
        )


class RecycleBinListingTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient(enable_rpc=False)

    def _deleted_client(self, name, deleted_at):
        return self.db.insert("clients", {**_client_row(name), "deleted_at": deleted_at})

    def _bin_row(self, original_id, deleted_at, **extra):
        row = {
            "original_table": "clients",
            "original_id": original_id,
            "deleted_at": deleted_at,
        }
        row.update(extra)
        return self.db.insert("recycle_bin", row)

    def test_merge_deduplicates_by_original_id(self):
        client = self._deleted_client("Maria", "2024-05-01T10:00:00+00:00")
        self._bin_row(client["id"], "2024-05-01T09:00:00+00:00", item_name="Velho")
        newest = self._bin_row(
            client["id"],
            "2024-05-01T10:00:00+00:00",
            data={"name": "Maria"},
            deleted_by="u1",
        )

        items = recycle_bin.get_recycle_bin_items(self.db)

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].id, newest["id"])
        self.assertEqual(items[0].recycle_bin_id, newest["id"])
        self.assertEqual(items[0].source, RecycleSource.RPC)
        self.assertEqual(items[0].deleted_by, "u1")
        self.assertEqual(items[0].data, {"name": "Maria"})

    def test_bin_row_without_snapshot_uses_item_name(self):
        client = self._deleted_client("Maria", NOW)
        self._bin_row(client["id"], NOW, item_name="Maria (arquivada)")
        items = recycle_bin.get_recycle_bin_items(self.db)
        self.assertEqual(items[0].data, {"name": "Maria (arquivada)"})

        other = self._deleted_client("João", NOW)
        self._bin_row(other["id"], NOW)
        names = {item.data["name"] for item in recycle_bin.get_recycle_bin_items(self.db)}
        self.assertIn("Sem nome", names)

    def test_bin_rows_of_restored_records_are_ignored(self):
        client = self.db.insert("clients", _client_row())
        self._bin_row(client["id"], NOW, item_name="Maria")
        self.assertEqual(recycle_bin.get_recycle_bin_items(self.db), [])

    def test_scanned_rows_sorted_newest_first(self):
        self._deleted_client("Antigo", "2024-01-01T00:00:00+00:00")
        self._deleted_client("Recente", "2024-06-01T00:00:00+00:00")
        counterpart = self.db.insert(
            "counterparts",
            {
                "name": "Banco",
                "type": "company",
                "created_at": NOW,
                "updated_at": NOW,
                "deleted_at": "2024-03-01T00:00:00Z",
            },
        )

        items = recycle_bin.get_recycle_bin_items(self.db)

        self.assertEqual(
            [item.data["name"] for item in items], ["Recente", "Banco", "Antigo"]
        )
        self.assertEqual(items[1].original_id, counterpart["id"])
        self.assertTrue(all(item.source == RecycleSource.SOFT_DELETE for item in items))

    def test_missing_source_is_skipped(self):
        self._deleted_client("Maria", NOW)
        self.db.drop_table("recycle_bin")
        self.db.drop_table("documents")
        with self.assertLogs("legalflow.recycle_bin", level="WARNING"):
            items = recycle_bin.get_recycle_bin_items(self.db)
        self.assertEqual(len(items), 1)


class PermanentDeleteTests(unittest.TestCase):
    def test_document_file_is_removed(self):
        db = InMemoryDbClient()
        storage = InMemoryStorageClient()
        storage.upload_bytes("u1/1_contrato.pdf", b"pdf")
        document = db.insert(
            "documents",
            {"title": "Contrato", "file_path": "u1/1_contrato.pdf", "created_at": NOW},
        )
        recycle_bin.move_to_recycle_bin(db, "documents", document["id"])

        self.assertTrue(
            recycle_bin.permanent_delete_from_recycle_bin(
                db, document["id"], "documents", storage=storage
            )
        )
        self.assertIsNone(db.get("documents", document["id"]))
        self.assertEqual(db.select("recycle_bin"), [])
        self.assertEqual(storage.stored_objects, {})

    def test_deleting_client_removes_its_cases(self):
        db = InMemoryDbClient()
        client = db.insert("clients", _client_row())
        legal_case = db.insert("legal_cases", _case_row(client["id"]))
        self.assertTrue(
            recycle_bin.permanent_delete_from_recycle_bin(db, client["id"], "clients")
        )
        self.assertIsNone(db.get("legal_cases", legal_case["id"]))

    def test_deleting_client_clears_audit_rows_of_its_cases(self):
        db = InMemoryDbClient()
        client = db.insert("clients", _client_row())
        legal_case = db.insert("legal_cases", _case_row(client["id"]))
        other_client = db.insert("clients", _client_row("Joana"))
        other_case = db.insert("legal_cases", _case_row(other_client["id"]))
        recycle_bin.move_to_recycle_bin(db, "clients", client["id"])
        recycle_bin.move_to_recycle_bin(db, "legal_cases", other_case["id"])
        self.assertEqual(len(db.select("recycle_bin")), 3)

        recycle_bin.permanent_delete_from_recycle_bin(db, client["id"], "clients")

        self.assertIsNone(db.get("legal_cases", legal_case["id"]))
        remaining = db.select("recycle_bin")
        self.assertEqual([row["original_id"] for row in remaining], [other_case["id"]])


class TrashViewHelpersTests(unittest.TestCase):
    def _item(self, table, data):
        return RecycleBinItem(
            id=data.get("id", "1"),
            original_table=table,
            original_id=data.get("id", "1"),
            data=data,
            deleted_at=NOW,
            source=RecycleSource.SOFT_DELETE,
        )

    def test_display_names(self):
        self.assertEqual(
            recycle_bin.item_display_name(
                self._item("legal_cases", {"case_number": "123", "title": "Cobrança"})
            ),
            "123 - Cobrança",
        )
        self.assertEqual(
            recycle_bin.item_display_name(self._item("documents", {"file_name": "a.pdf"})),
            "a.pdf",
        )
        self.assertEqual(
            recycle_bin.item_display_name(self._item("clients", {})), "Item sem nome"
        )

    def test_filter_and_count(self):
        items = [
            self._item("clients", {"id": "1", "name": "Maria"}),
            self._item("counterparts", {"id": "2", "name": "Banco Maria"}),
            self._item("clients", {"id": "3", "name": "João"}),
        ]
        self.assertEqual(len(recycle_bin.filter_recycle_bin_items(items, "maria")), 2)
        self.assertEqual(
            len(recycle_bin.filter_recycle_bin_items(items, "maria", "clients")), 1
        )
        counts = recycle_bin.count_by_table(items)
        self.assertEqual(counts["all"], 3)
        self.assertEqual(counts["clients"], 2)
        self.assertEqual(counts["documents"], 0)


if __name__ == "__main__":
    unittest.main()
