"""
Quote injection tests.
"""

import asyncio

import pytest

from conftest import FakeERPClient, created, records


def quote(article="ART-200", rfq="RFQ-5", **fields):
    from injection_engine.models import QuoteLine
    data = {"article_code": article, "rfq_number": rfq, "quantity": "4", "email_domain": "inkoop@acme.nl"}
    data.update(fields)
    return QuoteLine(**data)


@pytest.fixture
def client():
    fake = FakeERPClient()
    fake.on("POST", "Documents/vofh/", created("vofh", "vofh_num", "Q-2025-0001"))
    fake.on("POST", "Documents/vofr/", {})
    return fake


@pytest.fixture
def injector(client, clock):
    from customer_resolver import CustomerResolver
    from injection_engine import QuoteInjector, RecordingProgressSink
    return QuoteInjector(client, CustomerResolver(client), progress=RecordingProgressSink(), clock=clock)


class TestQuoteInjection:

    def test_header_and_lines(self, client, injector):
        from injection_engine.models import EntityKind, LineStatus

        summary = asyncio.run(injector.inject([quote("ART-200"), quote("ART-201")]))

        assert summary.entity_kind == EntityKind.QUOTE
        assert summary.successful_injections == 2
        assert all(r.status == LineStatus.SUCCESS and r.header_id == "Q-2025-0001" for r in summary.line_results)

        header = client.calls_to("POST", "Documents/vofh/")[0][2]["request"]["InputData"]["vofh"][0]
        assert header["vofh_referentie"] == header["vofh_ref_extern"] == "RFQ-5"
        assert header["vofh_omschrijving"] == "Quote for RFQ: RFQ-5"
        assert header["vofh_datum"] == "2025-06-02"
        assert header["vofh_geldig_tot"] == "2025-07-02"
        assert header["debi_num"] == "30010"

    def test_validity_days_setting(self, client, clock):
        from customer_resolver import CustomerResolver
        from injection_engine import InjectionSettings, QuoteInjector

        injector = QuoteInjector(
            client, CustomerResolver(client), settings=InjectionSettings(quote_validity_days=14), clock=clock
        )
        asyncio.run(injector.inject([quote()]))

        header = client.calls_to("POST", "Documents/vofh/")[0][2]["request"]["InputData"]["vofh"][0]
        assert header["vofh_geldig_tot"] == "2025-06-16"

    def test_line_payload(self, client, injector):
        line = quote(
            quoted_price="€ 3,75",
            total_price="15",
            unit="stuks",
            requested_delivery_date="01/07/2025",
            customer_part_number="CUST-9",
            description="Bracket",
        )
        asyncio.run(injector.inject([line]))

        body = client.calls_to("POST", "Documents/vofr/")[0][2]["request"]["InputData"]["vofr"][0]
        assert body["vofh_num"] == "Q-2025-0001"
        assert body["vofr_arti_code"] == "ART-200"
        assert body["vofr_oms_1"] == "Bracket"
        assert body["vofr_aantal"] == 4.0
        assert body["vofr_eenh_order"] == "st."
        assert body["vofr_prijs"] == 3.75
        assert body["vofr_totaal_prijs"] == 15.0
        assert body["vofr_gewenste_leverdatum"] == "2025-07-01"
        assert body["vofr_ref_extern"] == "RFQ-5"
        assert body["vofr_klant_artikelcode"] == "CUST-9"

    def test_no_requested_date_left_out(self, client, injector):
        asyncio.run(injector.inject([quote()]))
        body = client.calls_to("POST", "Documents/vofr/")[0][2]["request"]["InputData"]["vofr"][0]
        assert "vofr_gewenste_leverdatum" not in body

    def test_existing_quote_skipped(self, client, injector):
        from injection_engine.models import LineStatus

        client.on("GET", "Documents/vofh/?", records("vofh", {"vofh_num": "Q-OLD", "vofh_ref_extern": "RFQ-5"}))

        summary = asyncio.run(injector.inject([quote("ART-200"), quote("ART-201")]))

        assert summary.duplicates_filtered == 2
        assert {r.header_id for r in summary.line_results} == {"Q-OLD"}
        assert all(r.status == LineStatus.DUPLICATE_SKIPPED for r in summary.line_results)
        assert injector.progress.duplicates == 2
        assert client.calls_to("POST") == []

    def test_missing_quote_number(self, client, injector):
        from injection_engine.quotes import MISSING_QUOTE_NUMBER

        client.on("POST", "Documents/vofh/", {})
        summary = asyncio.run(injector.inject([quote()]))

        assert summary.failed_injections == 1
        assert summary.line_results[0].error_message == MISSING_QUOTE_NUMBER

    def test_placeholder_quote_articles_dropped(self, client, injector):
        summary = asyncio.run(injector.inject([quote("UNKNOWN-QUOTE"), quote("X1"), quote("ART-200")]))
        assert summary.rejected_lines == 2
        assert summary.successful_injections == 1
