"""Duplicate detection.

MKG has no idempotency key, so before a header is created the injector asks
MKG whether a matching header already exists. Detection is heuristic:

- Orders: an ordered list of filter strategies on the customer reference and
  the external order code; the first strategy with a matching record wins.
- Quotes: one query on the external reference.
- Revisions: the target BOM is looked up by filter and by direct key.

A check that cannot reach MKG reports "not found" so that a flaky lookup
never blocks a valid injection.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from connectors.erp_base import ERPClient
from connectors.mkg.mkg_client import MkgApiError, MkgNotFoundError
from connectors.mkg.mkg_models import (
    document_path,
    document_query,
    first_record,
    has_error_messages,
    iter_records,
)
from core.observability.logging import get_logger
from injection_engine.models import AnyLine, DuplicateCheck, RevisionLine

logger = get_logger(__name__)


@dataclass
class LineGroup:
    """Lines sharing one group key, in input order.

    `index` is the position of the group in first-seen order and decides
    where its results land in the summary.
    """
    key: str
    index: int
    lines: List[AnyLine] = field(default_factory=list)

    @property
    def first(self) -> AnyLine:
        return self.lines[0]

    def __len__(self) -> int:
        return len(self.lines)


class DuplicateDetector(Protocol):
    """Answers whether the header for a group already exists in the ERP."""

    async def exists(self, group: LineGroup) -> DuplicateCheck:
        ...


# =============================================================================
# Orders
# =============================================================================

def _quoted(value: str) -> str:
    return value.replace('"', "")


def exact_customer_reference(po_number: str) -> str:
    return f'vorh_ref_uw = "{_quoted(po_number)}"'


def exact_external_order_code(po_number: str) -> str:
    return f'vorh_bestelcode_extern = "{_quoted(po_number)}"'


def contains_customer_reference(po_number: str) -> str:
    return f'vorh_ref_uw CONTAINS "{_quoted(po_number)}"'


def contains_external_order_code(po_number: str) -> str:
    return f'vorh_bestelcode_extern CONTAINS "{_quoted(po_number)}"'


OrderStrategy = Tuple[str, Callable[[str], str]]

# Evaluated in order; the first strategy returning a match wins.
# The CONTAINS strategies also match longer references ("PO-10" in "PO-100").
ORDER_STRATEGIES: Tuple[OrderStrategy, ...] = (
    ("Exact Customer Reference", exact_customer_reference),
    ("Exact External Order Code", exact_external_order_code),
    ("Contains Customer Reference", contains_customer_reference),
    ("Contains External Order Code", contains_external_order_code),
)

ORDER_FIELDS = ("vorh_num", "vorh_ref_uw", "vorh_bestelcode_extern", "vorh_ref_onze")
ORDER_REFERENCE_FIELDS = ("vorh_ref_uw", "vorh_bestelcode_extern", "vorh_ref_onze")


def order_reference(record: Dict[str, Any]) -> str:
    """First non-empty reference column of an order header record."""
    for name in ORDER_REFERENCE_FIELDS:
        value = record.get(name)
        if value not in (None, ""):
            return str(value)
    return ""


def reference_matches(reference: str, po_number: str) -> bool:
    """Case-insensitive equality or containment."""
    ref = reference.strip().lower()
    po = po_number.strip().lower()
    if not ref or not po:
        return False
    return ref == po or po in ref


class OrderDuplicateDetector:
    """Looks for an existing sales order header carrying the PO number."""

    def __init__(
        self,
        client: ERPClient,
        strategies: Sequence[OrderStrategy] = ORDER_STRATEGIES,
        num_rows: int = 10,
    ):
        self.client = client
        self.strategies = tuple(strategies)
        self.num_rows = num_rows

    async def exists(self, group: LineGroup) -> DuplicateCheck:
        po_number = group.key
        failures = 0

        for name, build_filter in self.strategies:
            endpoint = document_query("vorh", build_filter(po_number), ORDER_FIELDS, self.num_rows)
            try:
                body = await self.client.get(endpoint)
            except MkgApiError as e:
                failures += 1
                logger.warning(f"Duplicate strategy '{name}' failed for PO {po_number}: {e}")
                continue

            for record in iter_records(body, "vorh"):
                if reference_matches(order_reference(record), po_number):
                    header_id = record.get("vorh_num")
                    logger.info(
                        f"Order {po_number} already exists",
                        extra_fields={"strategy": name, "vorh_num": header_id},
                    )
                    return DuplicateCheck(
                        found=True,
                        existing_header_id=str(header_id) if header_id not in (None, "") else None,
                        strategy=name,
                    )

        if self.strategies and failures == len(self.strategies):
            logger.warning(f"Duplicate check for PO {po_number} failed entirely, treating as new")
        return DuplicateCheck.not_found()


# =============================================================================
# Quotes
# =============================================================================

QUOTE_FIELDS = ("vofh_num", "vofh_ref_extern")


class QuoteDuplicateDetector:
    """Looks for an existing quote header with the RFQ as external reference."""

    strategy_name = "External Reference"

    def __init__(self, client: ERPClient, num_rows: int = 5):
        self.client = client
        self.num_rows = num_rows

    async def exists(self, group: LineGroup) -> DuplicateCheck:
        rfq_number = group.key
        endpoint = document_query(
            "vofh",
            f'vofh_ref_extern = "{_quoted(rfq_number)}"',
            QUOTE_FIELDS,
            self.num_rows,
        )
        try:
            body = await self.client.get(endpoint)
        except MkgApiError as e:
            logger.warning(f"Duplicate check for RFQ {rfq_number} failed, treating as new: {e}")
            return DuplicateCheck.not_found()

        record = first_record(body, "vofh")
        if record is None:
            return DuplicateCheck.not_found()

        header_id = record.get("vofh_num")
        logger.info(f"Quote for RFQ {rfq_number} already exists", extra_fields={"vofh_num": header_id})
        return DuplicateCheck(
            found=True,
            existing_header_id=str(header_id) if header_id not in (None, "") else None,
            strategy=self.strategy_name,
        )


# =============================================================================
# Revisions
# =============================================================================

BOM_FIELDS = ("stlh_num", "stlh_revisie")


def bom_key(administration_number: str, bom_id: str) -> str:
    """Record key of a BOM header: "<admi>+<stlh_num>"."""
    return f"{administration_number}+{bom_id}"


def _is_missing(body: Any, table: str = "stlh") -> bool:
    """Empty body, empty result set or an MKG "not found" answer."""
    if not body or has_error_messages(body):
        return True
    if not isinstance(body, dict):
        return False
    if ("response" in body or "data" in body) and first_record(body, table) is None:
        return True
    raw = body.get("raw")
    return isinstance(raw, str) and "not found" in raw.lower()


class RevisionDuplicateDetector:
    """Checks whether the target BOM of a revision already exists."""

    def __init__(self, client: ERPClient, administration_number: str = "1"):
        self.client = client
        self.administration_number = administration_number

    async def exists(self, group: LineGroup) -> DuplicateCheck:
        line: RevisionLine = group.first
        target = line.target_bom_id
        failures = 0

        endpoint = document_query("stlh", f'stlh_num = "{_quoted(target)}"', BOM_FIELDS)
        try:
            body = await self.client.get(endpoint)
            record = first_record(body, "stlh")
            if record is not None:
                logger.info(f"Revision BOM {target} already exists")
                return DuplicateCheck(found=True, existing_header_id=target, strategy="Filtered BOM Query")
        except MkgApiError as e:
            failures += 1
            logger.warning(f"BOM query for {target} failed: {e}")

        try:
            body = await self.client.get(document_path("stlh", bom_key(self.administration_number, target)))
            if not _is_missing(body):
                logger.info(f"Revision BOM {target} found by direct fetch")
                return DuplicateCheck(found=True, existing_header_id=target, strategy="Direct BOM Fetch")
        except MkgNotFoundError:
            pass
        except MkgApiError as e:
            failures += 1
            logger.warning(f"Direct BOM fetch for {target} failed: {e}")

        if failures == 2:
            logger.warning(f"Duplicate check for revision {target} failed entirely, treating as new")
        return DuplicateCheck.not_found()

    async def source_exists(self, group: LineGroup, administration_number: Optional[str] = None) -> bool:
        """True unless MKG reports the source BOM as missing.

        A lookup that fails for another reason does not block the revision;
        the create-revision call reports the real problem.
        """
        line: RevisionLine = group.first
        source = line.source_bom_id
        admi = administration_number or self.administration_number
        try:
            body = await self.client.get(document_path("stlh", bom_key(admi, source)))
        except MkgNotFoundError:
            return False
        except MkgApiError as e:
            logger.warning(f"Cannot verify source BOM {source}: {e}")
            return True
        return not _is_missing(body)
