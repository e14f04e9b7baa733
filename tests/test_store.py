import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from core.data import ID_FIELD
from core.store import STATE_ERRORED, STATE_LOADED, STATE_UNLOADED, ContractStore, RecordNotFound
from tests.sample_docs import CONTRACTS_CSV, SCENARIO_CSV


class StoreLoadTests(unittest.TestCase):
    def test_new_store_is_unloaded_and_empty(self):
        store = ContractStore("https://example.test/sheet.csv")
        self.assertEqual(store.state, STATE_UNLOADED)
        self.assertEqual(store.records, [])
        self.assertEqual(store.metrics.total, 0)

    def test_load_from_url(self):
        response = mock.Mock(content=CONTRACTS_CSV.encode("utf-8"))
        with mock.patch("core.data.requests.get", return_value=response):
            store = ContractStore("https://example.test/sheet.csv").load()
        self.assertEqual(store.state, STATE_LOADED)
        self.assertIsNone(store.error)
        self.assertEqual(len(store.records), 5)

    def test_load_from_local_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "contracts.csv"
            path.write_text(CONTRACTS_CSV, encoding="utf-8")
            store = ContractStore(str(path)).load()
        self.assertEqual(len(store.records), 5)

    def test_failed_load_is_errored(self):
        with mock.patch("core.data.requests.get", side_effect=requests.ConnectionError("offline")):
            store = ContractStore("https://example.test/sheet.csv").load()
        self.assertEqual(store.state, STATE_ERRORED)
        self.assertIn("offline", store.error)
        self.assertEqual(store.records, [])

    def test_failed_reload_keeps_previous_dataset(self):
        store = ContractStore("https://example.test/sheet.csv").load_text(CONTRACTS_CSV)
        with mock.patch("core.data.requests.get", side_effect=requests.Timeout("timed out")):
            store.reload()
        self.assertEqual(store.state, STATE_ERRORED)
        self.assertEqual(len(store.records), 5)

    def test_successful_reload_replaces_dataset(self):
        store = ContractStore("https://example.test/sheet.csv").load_text(CONTRACTS_CSV)
        store.delete("row-4")
        response = mock.Mock(content=CONTRACTS_CSV.encode("utf-8"))
        with mock.patch("core.data.requests.get", return_value=response):
            store.reload()
        self.assertEqual(len(store.records), 5)
        self.assertEqual(store.metrics.total, 5)

    def test_malformed_document_loads_empty(self):
        store = ContractStore("x").load_text("only\ntwo lines\n")
        self.assertEqual(store.state, STATE_LOADED)
        self.assertEqual((store.headers, store.records), ([], []))


class StoreMutationTests(unittest.TestCase):
    def setUp(self):
        self.store = ContractStore("https://example.test/sheet.csv").load_text(CONTRACTS_CSV)

    def test_create_prepends_full_record(self):
        record = self.store.create({"CONTRATO": "099/2024", "SITUAÇÃO": "VIGENTE", "UNKNOWN": "x"})
        self.assertTrue(record[ID_FIELD].startswith("new-"))
        self.assertEqual(self.store.records[0], record)
        self.assertEqual(set(record) - {ID_FIELD}, set(self.store._sheet.keys))
        self.assertEqual(record["SECRETARIA"], "")
        self.assertNotIn("UNKNOWN", record)
        self.assertEqual(self.store.metrics.total, 6)
        self.assertEqual(self.store.metrics.active, 3)

    def test_created_ids_are_unique(self):
        with mock.patch("core.store.time.time", return_value=1_700_000_000.0):
            first = self.store.create({})
            second = self.store.create({})
        self.assertEqual(first[ID_FIELD], "new-1700000000000")
        self.assertEqual(second[ID_FIELD], "new-1700000000001")

    def test_update_merges_known_fields_in_place(self):
        before = self.store.metrics
        updated = self.store.update("row-5", {"SITUAÇÃO": "VIGENTE", "NOT A COLUMN": "x"})
        self.assertEqual(self.store.records[1], updated)
        self.assertEqual(updated["SITUAÇÃO"], "VIGENTE")
        self.assertEqual(updated["CONTRATO"], "002/2023")
        self.assertNotIn("NOT A COLUMN", updated)
        self.assertEqual(before.expired, 1)
        self.assertEqual(self.store.metrics.expired, 0)

    def test_update_missing_id_raises(self):
        with self.assertRaises(RecordNotFound):
            self.store.update("row-999", {"SITUAÇÃO": "VIGENTE"})
        self.assertEqual(len(self.store.records), 5)

    def test_delete(self):
        self.store.delete("row-4")
        self.assertEqual([r[ID_FIELD] for r in self.store.records], ["row-5", "row-6", "row-7", "row-8"])
        self.assertEqual(self.store.metrics.total, 4)
        with self.assertRaises(RecordNotFound):
            self.store.delete("row-4")

    def test_get(self):
        self.assertEqual(self.store.get("row-6")["OBJETO"], "Transporte")
        with self.assertRaises(RecordNotFound):
            self.store.get("nope")


class EndToEndTests(unittest.TestCase):
    def test_six_line_document(self):
        store = ContractStore("x").load_text(SCENARIO_CSV)
        self.assertEqual(len(store.records), 2)
        m = store.metrics
        self.assertEqual((m.total, m.active, m.expired, m.expiring_soon), (2, 1, 1, 1))
