"""Quote injection (vofh header, vofr lines), grouped by RFQ number."""

from datetime import timedelta
from typing import Any, Dict, Tuple

from connectors.mkg.mkg_models import VofhRow, VofrRow, build_request, document_path
from customer_resolver import CustomerInfo
from injection_engine.duplicates import LineGroup, QuoteDuplicateDetector
from injection_engine.injector import HeaderLineInjector
from injection_engine.models import EntityKind, HeaderResult, QuoteLine
from injection_engine.orders import build_memo, line_quantity
from injection_engine.parsing import format_mkg_date, parse_date, to_float
from injection_engine.units import normalize_unit

QUOTE_MEMO = "Auto-generated quote from email processing"
MISSING_QUOTE_NUMBER = "Could not extract quote number from response"


class QuoteInjector(HeaderLineInjector):
    """Creates one MKG quote per RFQ number."""

    entity_kind = EntityKind.QUOTE
    label = "quote"

    def default_detector(self) -> QuoteDuplicateDetector:
        return QuoteDuplicateDetector(self.client)

    def build_header(self, group: LineGroup, customer: CustomerInfo) -> VofhRow:
        first: QuoteLine = group.first
        today = self.today()
        return VofhRow(
            admi_num=customer.administration_number,
            debi_num=customer.debtor_number,
            rela_num=customer.relation_number,
            vofh_referentie=group.key,
            vofh_ref_extern=group.key,
            vofh_omschrijving=f"Quote for RFQ: {group.key}",
            vofh_datum=format_mkg_date(today),
            vofh_geldig_tot=format_mkg_date(today + timedelta(days=self.settings.quote_validity_days)),
            vofh_prioriteit=first.priority or "NORMAL",
            vofh_contact=customer.name,
            vofh_memo=QUOTE_MEMO,
        )

    async def create_header(self, group: LineGroup, customer: CustomerInfo) -> HeaderResult:
        row = self.build_header(group, customer)
        return await self.post_header(
            document_path("vofh"),
            build_request("vofh", [row]),
            table="vofh",
            id_field="vofh_num",
            missing_id_message=MISSING_QUOTE_NUMBER,
        )

    def build_line(self, line: QuoteLine, quote_number: str, customer: CustomerInfo) -> VofrRow:
        requested = parse_date(line.requested_delivery_date)
        return VofrRow(
            admi_num=customer.administration_number,
            vofh_num=quote_number,
            vofr_arti_code=line.article_code,
            vofr_oms_1=line.description or line.article_code,
            vofr_aantal=line_quantity(line),
            vofr_eenh_order=normalize_unit(line.unit),
            vofr_prijs=to_float(line.quoted_price),
            vofr_totaal_prijs=to_float(line.total_price),
            vofr_gewenste_leverdatum=format_mkg_date(requested) if requested else None,
            vofr_ref_extern=line.rfq_number,
            vofr_regel=line.line_number or "001",
            vofr_tekening_nr=line.drawing_number,
            vofr_revisie=line.revision or "00",
            vofr_klant_artikelcode=line.customer_part_number,
            vofr_prioriteit=line.priority or "NORMAL",
            vofr_memo=build_memo(line, self._clock()),
        )

    def build_line_request(
        self, line: QuoteLine, header: HeaderResult, customer: CustomerInfo
    ) -> Tuple[str, Dict[str, Any]]:
        row = self.build_line(line, header.header_id, customer)
        return document_path("vofr"), build_request("vofr", [row])
