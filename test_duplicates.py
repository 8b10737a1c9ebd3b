"""
Duplicate detection tests.
"""

import asyncio
from urllib.parse import unquote

import pytest

from conftest import FakeERPClient, error_body, records


def group_of(*lines):
    from injection_engine.duplicates import LineGroup
    return LineGroup(key=lines[0].group_key, index=0, lines=list(lines))


def order(po="PO-1001", article="ART-100"):
    from injection_engine.models import OrderLine
    return OrderLine(article_code=article, po_number=po)


def revision(article="BOM-7", current="01", new="02"):
    from injection_engine.models import RevisionLine
    return RevisionLine(article_code=article, current_revision=current, new_revision=new)


class TestOrderStrategies:

    def test_filters(self):
        from injection_engine.duplicates import ORDER_STRATEGIES
        filters = [build("PO-1") for _, build in ORDER_STRATEGIES]
        assert filters == [
            'vorh_ref_uw = "PO-1"',
            'vorh_bestelcode_extern = "PO-1"',
            'vorh_ref_uw CONTAINS "PO-1"',
            'vorh_bestelcode_extern CONTAINS "PO-1"',
        ]

    def test_quotes_stripped_from_filter_value(self):
        from injection_engine.duplicates import exact_customer_reference
        assert exact_customer_reference('PO"1') == 'vorh_ref_uw = "PO1"'

    @pytest.mark.parametrize("reference,po,expected", [
        ("PO-1001", "po-1001", True),
        ("Order PO-1001 urgent", "PO-1001", True),
        ("PO-100", "PO-1001", False),
        ("", "PO-1001", False),
    ])
    def test_reference_matches(self, reference, po, expected):
        from injection_engine.duplicates import reference_matches
        assert reference_matches(reference, po) is expected

    def test_order_reference_first_non_empty(self):
        from injection_engine.duplicates import order_reference
        assert order_reference({"vorh_ref_uw": "", "vorh_bestelcode_extern": "PO-9"}) == "PO-9"
        assert order_reference({}) == ""


class TestOrderDuplicateDetector:

    def test_new_order_runs_every_strategy(self):
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient()
        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order())))

        assert not check.found
        queries = client.calls_to("GET", "Documents/vorh/?")
        assert len(queries) == 4
        assert 'vorh_ref_uw = "PO-1001"' in unquote(queries[0][1])
        assert queries[0][1].endswith("NumRows=10")

    def test_first_matching_strategy_wins(self):
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/vorh/?Filter=vorh_bestelcode_extern",
                  records("vorh", {"vorh_num": 20250042, "vorh_bestelcode_extern": "PO-1001"}))

        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order())))

        assert check.found
        assert check.existing_header_id == "20250042"
        assert check.strategy == "Exact External Order Code"
        assert len(client.calls) == 2

    def test_contains_match_on_longer_reference(self):
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/vorh/?Filter=vorh_ref_uw%20CONTAINS",
                  records("vorh", {"vorh_num": "7", "vorh_ref_uw": "PO-10 / line 2"}))

        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order(po="PO-10"))))
        assert check.found
        assert check.strategy == "Contains Customer Reference"

    def test_non_matching_records_ignored(self):
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/vorh/?", records("vorh", {"vorh_num": "1", "vorh_ref_uw": "PO-2002"}))

        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order())))
        assert not check.found

    def test_failing_strategies_treated_as_new(self):
        from connectors.mkg import MkgConnectionError
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient().on("GET", "Documents/vorh/?", MkgConnectionError("timeout"))
        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order())))

        assert not check.found
        assert len(client.calls) == 4

    def test_one_failing_strategy_does_not_stop_the_rest(self):
        from connectors.mkg import MkgApiError
        from injection_engine.duplicates import OrderDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/vorh/?Filter=vorh_ref_uw%20CONTAINS",
                  records("vorh", {"vorh_num": "5", "vorh_ref_uw": "PO-1001"}))
        client.on("GET", "Documents/vorh/?Filter=vorh_ref_uw%20%3D", MkgApiError("boom", 500))

        check = asyncio.run(OrderDuplicateDetector(client).exists(group_of(order())))
        assert check.found
        assert check.existing_header_id == "5"


class TestQuoteDuplicateDetector:

    def test_existing_quote(self):
        from injection_engine.duplicates import QuoteDuplicateDetector
        from injection_engine.models import QuoteLine

        client = FakeERPClient().on("GET", "Documents/vofh/?", records("vofh", {"vofh_num": "Q-77"}))
        line = QuoteLine(article_code="ART-200", rfq_number="RFQ-5")

        check = asyncio.run(QuoteDuplicateDetector(client).exists(group_of(line)))

        assert check.found
        assert check.existing_header_id == "Q-77"
        assert check.strategy == "External Reference"
        assert 'vofh_ref_extern = "RFQ-5"' in unquote(client.calls[0][1])
        assert client.calls[0][1].endswith("NumRows=5")

    def test_lookup_error_treated_as_new(self):
        from connectors.mkg import MkgApiError
        from injection_engine.duplicates import QuoteDuplicateDetector
        from injection_engine.models import QuoteLine

        client = FakeERPClient().on("GET", "Documents/vofh/?", MkgApiError("boom", 500))
        line = QuoteLine(article_code="ART-200", rfq_number="RFQ-5")
        assert not asyncio.run(QuoteDuplicateDetector(client).exists(group_of(line))).found


class TestRevisionDuplicateDetector:

    def test_found_by_filtered_query(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient().on("GET", "Documents/stlh/?", records("stlh", {"stlh_num": "BOM-7-02"}))
        check = asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision())))

        assert check.found
        assert check.existing_header_id == "BOM-7-02"
        assert check.strategy == "Filtered BOM Query"

    def test_found_by_direct_fetch(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/stlh/1+BOM-7-02", {"stlh_num": "BOM-7-02"})

        check = asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision())))

        assert check.found
        assert check.strategy == "Direct BOM Fetch"

    def test_not_found(self):
        from connectors.mkg import MkgNotFoundError
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/stlh/3+", MkgNotFoundError("Not Found", 404))

        check = asyncio.run(RevisionDuplicateDetector(client, "3").exists(group_of(revision())))

        assert not check.found
        assert [c[1] for c in client.calls][-1] == "Documents/stlh/3+BOM-7-02"

    def test_error_body_is_not_a_match(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/stlh/1+", error_body("Record niet gevonden"))
        assert not asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision()))).found

        client = FakeERPClient()
        client.on("GET", "Documents/stlh/1+", {"raw": "Record not found"})
        assert not asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision()))).found

    def test_empty_result_is_not_a_match(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        for body in (records("stlh"), {"data": []}):
            client = FakeERPClient().on("GET", "Documents/stlh/1+", body)
            check = asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision())))
            assert not check.found
            assert check.strategy is None

    def test_enveloped_record_found_by_direct_fetch(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient()
        client.on("GET", "Documents/stlh/1+BOM-7-02", records("stlh", {"stlh_num": "BOM-7-02"}))

        check = asyncio.run(RevisionDuplicateDetector(client).exists(group_of(revision())))

        assert check.found
        assert check.strategy == "Direct BOM Fetch"

    def test_source_exists(self):
        from connectors.mkg import MkgApiError, MkgNotFoundError
        from injection_engine.duplicates import RevisionDuplicateDetector

        group = group_of(revision())

        present = FakeERPClient().on("GET", "Documents/stlh/1+BOM-7-01", {"stlh_num": "BOM-7-01"})
        assert asyncio.run(RevisionDuplicateDetector(present).source_exists(group))

        missing = FakeERPClient().on("GET", "Documents/stlh/", MkgNotFoundError("Not Found", 404))
        assert not asyncio.run(RevisionDuplicateDetector(missing).source_exists(group))

        error = FakeERPClient().on("GET", "Documents/stlh/", error_body("Onbekende stuklijst"))
        assert not asyncio.run(RevisionDuplicateDetector(error).source_exists(group))

        empty = FakeERPClient()
        assert not asyncio.run(RevisionDuplicateDetector(empty).source_exists(group))

        no_rows = FakeERPClient().on("GET", "Documents/stlh/", records("stlh"))
        assert not asyncio.run(RevisionDuplicateDetector(no_rows).source_exists(group))

        flaky = FakeERPClient().on("GET", "Documents/stlh/", MkgApiError("timeout", 503))
        assert asyncio.run(RevisionDuplicateDetector(flaky).source_exists(group))

    def test_source_uses_given_administration(self):
        from injection_engine.duplicates import RevisionDuplicateDetector

        client = FakeERPClient()
        asyncio.run(RevisionDuplicateDetector(client).source_exists(group_of(revision()), "4"))
        assert client.calls[0][1] == "Documents/stlh/4+BOM-7-01"
