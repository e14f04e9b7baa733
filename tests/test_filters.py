import unittest

from core.data import ID_FIELD, parse_sheet
from core.filters import (
    ALL_ORG_UNITS,
    ContractFilters,
    StatusFilter,
    filter_records,
    matches,
    normalize_filters,
    org_unit_options,
    paginate,
)
from core.store import ContractStore
from tests.sample_docs import CONTRACTS_CSV


def _ids(records):
    return [r[ID_FIELD] for r in records]


class MatchesTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.records = parse_sheet(CONTRACTS_CSV).records

    def test_default_filters_match_everything(self):
        f = ContractFilters()
        self.assertTrue(all(matches(r, f) for r in self.records))

    def test_text_search_is_case_insensitive_over_all_fields(self):
        self.assertEqual(_ids(filter_records(self.records, ContractFilters(query="limpeza"))), ["row-4"])
        self.assertEqual(_ids(filter_records(self.records, ContractFilters(query="EPSILON"))), ["row-8"])

    def test_text_search_ignores_synthetic_id(self):
        self.assertEqual(filter_records(self.records, ContractFilters(query="row-")), [])

    def test_active_includes_in_force_and_expiring(self):
        rows = filter_records(self.records, ContractFilters(status=StatusFilter.ACTIVE))
        self.assertEqual(_ids(rows), ["row-4", "row-6", "row-8"])

    def test_single_category_filters(self):
        cases = {
            StatusFilter.IN_FORCE: ["row-4", "row-6"],
            StatusFilter.EXPIRED: ["row-5"],
            StatusFilter.TERMINATED: ["row-7"],
            StatusFilter.EXPIRING: ["row-4", "row-8"],
            StatusFilter.ALL: ["row-4", "row-5", "row-6", "row-7", "row-8"],
        }
        for status, expected in cases.items():
            with self.subTest(status=status):
                self.assertEqual(_ids(filter_records(self.records, ContractFilters(status=status))), expected)

    def test_org_unit_is_exact_match(self):
        self.assertEqual(_ids(filter_records(self.records, ContractFilters(org_unit="SAUDE"))), ["row-4", "row-6"])
        self.assertEqual(filter_records(self.records, ContractFilters(org_unit="SAU")), [])
        self.assertEqual(filter_records(self.records, ContractFilters(org_unit="saude")), [])

    def test_predicates_are_combined(self):
        f = ContractFilters(query="2024", status=StatusFilter.IN_FORCE, org_unit="SAUDE")
        self.assertEqual(_ids(filter_records(self.records, f)), ["row-4", "row-6"])
        f = ContractFilters(query="transporte", status=StatusFilter.EXPIRING, org_unit="SAUDE")
        self.assertEqual(filter_records(self.records, f), [])

    def test_in_force_expiring_record_passes_both_filters(self):
        record = {"SITUACAO": "VIGENTE", "DIAS": "15"}
        self.assertTrue(matches(record, ContractFilters(status=StatusFilter.ACTIVE)))
        self.assertTrue(matches(record, ContractFilters(status=StatusFilter.IN_FORCE)))
        self.assertTrue(matches(record, ContractFilters(status=StatusFilter.EXPIRING)))

    def test_org_unit_options(self):
        self.assertEqual(org_unit_options(self.records), [ALL_ORG_UNITS, "EDUCACAO", "OBRAS", "SAUDE"])
        self.assertEqual(org_unit_options([]), [ALL_ORG_UNITS])


class NormalizeFiltersTests(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(normalize_filters({}), ContractFilters())
        self.assertEqual(normalize_filters(None), ContractFilters())

    def test_aliases_and_enum_values(self):
        self.assertEqual(normalize_filters({"status": "ATIVOS"}).status, StatusFilter.ACTIVE)
        self.assertEqual(normalize_filters({"status": "A VENCER"}).status, StatusFilter.EXPIRING)
        self.assertEqual(normalize_filters({"status": "in_force"}).status, StatusFilter.IN_FORCE)
        self.assertEqual(normalize_filters({"status": StatusFilter.EXPIRED}).status, StatusFilter.EXPIRED)
        self.assertEqual(normalize_filters({"status": "bogus"}).status, StatusFilter.ALL)
        self.assertEqual(normalize_filters({"org_unit": "TODAS"}).org_unit, ALL_ORG_UNITS)
        self.assertEqual(normalize_filters({"org_unit": "all"}).org_unit, ALL_ORG_UNITS)
        self.assertEqual(normalize_filters({"org_unit": "  "}).org_unit, ALL_ORG_UNITS)

    def test_org_unit_and_query_keep_their_whitespace(self):
        self.assertEqual(normalize_filters({"org_unit": " SAUDE "}).org_unit, " SAUDE ")
        self.assertEqual(normalize_filters({"query": "Alfa "}).query, "Alfa ")

    def test_padded_org_unit_option_selects_its_record(self):
        store = ContractStore("x").load_text(CONTRACTS_CSV)
        created = store.create({"CONTRATO": "099/2024", "SECRETARIA": " SAUDE "})
        self.assertIn(" SAUDE ", org_unit_options(store.records))
        f = normalize_filters({"org_unit": " SAUDE "})
        self.assertEqual(_ids(filter_records(store.records, f)), [created[ID_FIELD]])
        self.assertEqual(_ids(filter_records(store.records, normalize_filters({"org_unit": "SAUDE"}))), ["row-4", "row-6"])

    def test_paging_values_are_clamped(self):
        f = normalize_filters({"page": "0", "page_size": 10_000, "query": "  x "})
        self.assertEqual((f.page, f.page_size, f.query), (1, 200, "  x "))
        f = normalize_filters({"page": "abc", "page_size": None})
        self.assertEqual((f.page, f.page_size), (1, 8))


class PaginateTests(unittest.TestCase):
    def setUp(self):
        self.records = [{"N": str(i)} for i in range(17)]

    def test_page_count_and_last_page(self):
        page = paginate(self.records, 3, 8)
        self.assertEqual(page.total_pages, 3)
        self.assertEqual(page.total_items, 17)
        self.assertEqual(len(page.items), 1)
        self.assertEqual(page.items[0]["N"], "16")

    def test_out_of_range_page_is_empty(self):
        self.assertEqual(paginate(self.records, 4, 8).items, [])
        self.assertEqual(paginate(self.records, 0, 8).items, [])

    def test_first_page(self):
        self.assertEqual(len(paginate(self.records, 1).items), 8)

    def test_empty_input(self):
        page = paginate([], 1, 8)
        self.assertEqual((page.items, page.total_pages), ([], 0))
