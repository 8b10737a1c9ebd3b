"""Sales order injection (vorh header, vorr lines), grouped by PO number."""

from datetime import datetime
from typing import Any, Dict, Tuple

from connectors.mkg.mkg_models import VorhRow, VorrRow, build_request, document_path
from customer_resolver import CustomerInfo
from injection_engine.duplicates import LineGroup, OrderDuplicateDetector
from injection_engine.injector import HeaderLineInjector
from injection_engine.models import EntityKind, HeaderResult, LineRecord, OrderLine
from injection_engine.parsing import format_mkg_date, mkg_date_or_default, parse_decimal, to_float
from injection_engine.units import normalize_unit

ORDER_MEMO = "Auto-generated order from email processing"
MISSING_ORDER_NUMBER = "Could not extract order number from response"


def build_memo(line: LineRecord, now: datetime) -> str:
    """Internal memo recording where a line came from.

    "Notes: ... | Extracted via: ... | Source: ... | Auto-processed: 2025-11-15 09:30"
    """
    parts = []
    if line.notes:
        parts.append(f"Notes: {line.notes}")
    if line.extraction_method:
        parts.append(f"Extracted via: {line.extraction_method}")
    if line.email_domain:
        parts.append(f"Source: {line.email_domain}")
    parts.append(f"Auto-processed: {now:%Y-%m-%d %H:%M}")
    return " | ".join(parts)


def line_quantity(line: LineRecord) -> float:
    """Parsed quantity, 1 when the extractor found none."""
    quantity = parse_decimal(line.quantity)
    return float(quantity) if quantity is not None else 1.0


class OrderInjector(HeaderLineInjector):
    """Creates one MKG sales order per PO number."""

    entity_kind = EntityKind.ORDER
    label = "order"

    def default_detector(self) -> OrderDuplicateDetector:
        return OrderDuplicateDetector(self.client)

    def build_header(self, group: LineGroup, customer: CustomerInfo) -> VorhRow:
        first: OrderLine = group.first
        today = self.today()
        return VorhRow(
            admi_num=customer.administration_number,
            debi_num=customer.debtor_number,
            rela_num=customer.relation_number,
            vorh_ref_uw=group.key,
            vorh_omschrijving=f"Order for PO: {group.key}",
            vorh_datum=format_mkg_date(today),
            vorh_gewenste_leverdatum=mkg_date_or_default(
                first.delivery_date, today, self.settings.order_lead_days
            ),
            vorh_prioriteit=first.priority or "NORMAL",
            vorh_bestelcode_extern=group.key,
            vorh_contact=customer.name,
            vorh_memo=ORDER_MEMO,
        )

    async def create_header(self, group: LineGroup, customer: CustomerInfo) -> HeaderResult:
        row = self.build_header(group, customer)
        return await self.post_header(
            document_path("vorh"),
            build_request("vorh", [row]),
            table="vorh",
            id_field="vorh_num",
            missing_id_message=MISSING_ORDER_NUMBER,
        )

    def build_line(self, line: OrderLine, order_number: str, customer: CustomerInfo) -> VorrRow:
        unit_price = to_float(line.unit_price)
        total_price = to_float(line.total_price)
        delivery = mkg_date_or_default(line.delivery_date, self.today(), self.settings.order_lead_days)
        return VorrRow(
            admi_num=customer.administration_number,
            vorh_num=order_number,
            vorr_arti_code=line.article_code,
            vorr_oms_1=line.description or line.article_code,
            vorr_order_aantal=line_quantity(line),
            vorr_eenh_order=normalize_unit(line.unit),
            vorr_prijs_order=unit_price,
            vorr_totaal_prijs=total_price,
            vorr_prijs=unit_price,
            vorr_totaal_excl=total_price,
            vorr_gewenste_leverdatum=delivery,
            vorr_leverdatum=delivery,
            vorr_ref_extern=line.po_number,
            vorr_memo_extern=line.memo_extern or line.notes,
            vorr_regel=line.line_number or "001",
            vorr_tekening_nr=line.drawing_number,
            vorr_revisie=line.revision or "00",
            vorr_leverancier_artikelcode=line.supplier_part_number,
            vorr_prioriteit=line.priority or "NORMAL",
            vorr_memo=build_memo(line, self._clock()),
        )

    def build_line_request(
        self, line: OrderLine, header: HeaderResult, customer: CustomerInfo
    ) -> Tuple[str, Dict[str, Any]]:
        row = self.build_line(line, header.header_id, customer)
        return document_path("vorr"), build_request("vorr", [row])
