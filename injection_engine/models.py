"""Injection Engine Data Models.

This module defines the Pydantic models that flow through the pipeline:
- OrderLine / QuoteLine / RevisionLine: immutable line records from the extractor
- HeaderResult: outcome of one header-create call
- LineResult: outcome for one line that reached the pipeline
- DuplicateCheck: outcome of a duplicate lookup
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    """Kind of ERP document a line belongs to."""
    ORDER = "order"
    QUOTE = "quote"
    REVISION = "revision"


class LineStatus(str, Enum):
    """Classification of a line outcome."""
    SUCCESS = "SUCCESS"
    DUPLICATE_SKIPPED = "DUPLICATE_SKIPPED"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    TECHNICAL_FAILURE = "TECHNICAL_FAILURE"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"


class FailureCode(str, Enum):
    """Symbolic codes stored on LineResult.failure_code besides HTTP statuses."""
    DUPLICATE_SKIPPED = "DUPLICATE_SKIPPED"
    HEADER_CREATION_FAILED = "HEADER_CREATION_FAILED"
    GROUP_ERROR = "GROUP_ERROR"
    EXCEPTION = "EXCEPTION"
    BOM_NOT_FOUND = "BOM_NOT_FOUND"
    ERP_MESSAGE = "ERP_MESSAGE"


# =============================================================================
# Line Records
# =============================================================================

class LineRecord(BaseModel):
    """Fields shared by every extracted line.

    Values are kept as extracted strings; parsing happens in the validator
    and the payload builders.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    article_code: str = Field(default="", description="Article (item) code")
    line_number: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[str] = None
    unit: Optional[str] = None
    drawing_number: Optional[str] = None
    revision: Optional[str] = None
    priority: Optional[str] = None
    notes: Optional[str] = None
    extraction_method: Optional[str] = None
    email_domain: str = Field(default="", description="Sender address or domain used for customer lookup")

    @property
    def entity_kind(self) -> EntityKind:
        raise NotImplementedError

    @property
    def group_key(self) -> str:
        raise NotImplementedError

    @property
    def unit_price_text(self) -> Optional[str]:
        return None

    @property
    def total_price_text(self) -> Optional[str]:
        return None

    @property
    def delivery_date_text(self) -> Optional[str]:
        return None


class OrderLine(LineRecord):
    """A purchase order line, grouped by PO number."""
    po_number: str = ""
    unit_price: Optional[str] = None
    total_price: Optional[str] = None
    delivery_date: Optional[str] = None
    supplier_part_number: Optional[str] = None
    memo_extern: Optional[str] = None

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.ORDER

    @property
    def group_key(self) -> str:
        return self.po_number.strip()

    @property
    def unit_price_text(self) -> Optional[str]:
        return self.unit_price

    @property
    def total_price_text(self) -> Optional[str]:
        return self.total_price

    @property
    def delivery_date_text(self) -> Optional[str]:
        return self.delivery_date


class QuoteLine(LineRecord):
    """A request-for-quote line, grouped by RFQ number."""
    rfq_number: str = ""
    quoted_price: Optional[str] = None
    total_price: Optional[str] = None
    requested_delivery_date: Optional[str] = None
    customer_part_number: Optional[str] = None

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.QUOTE

    @property
    def group_key(self) -> str:
        return self.rfq_number.strip()

    @property
    def unit_price_text(self) -> Optional[str]:
        return self.quoted_price

    @property
    def total_price_text(self) -> Optional[str]:
        return self.total_price

    @property
    def delivery_date_text(self) -> Optional[str]:
        return self.requested_delivery_date


class RevisionLine(LineRecord):
    """An engineering change against a BOM, grouped by article + revision pair."""
    current_revision: str = "00"
    new_revision: str = "01"
    field_changed: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    change_reason: Optional[str] = None
    revision_reason: Optional[str] = None

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.REVISION

    @property
    def group_key(self) -> str:
        if not self.article_code.strip():
            return ""
        return f"{self.article_code.strip()}:{self.current_revision}->{self.new_revision}"

    @property
    def source_bom_id(self) -> str:
        return f"{self.article_code.strip()}-{self.current_revision}"

    @property
    def target_bom_id(self) -> str:
        return f"{self.article_code.strip()}-{self.new_revision}"


AnyLine = Union[OrderLine, QuoteLine, RevisionLine]

LINE_MODELS = {
    EntityKind.ORDER: OrderLine,
    EntityKind.QUOTE: QuoteLine,
    EntityKind.REVISION: RevisionLine,
}


def parse_line(kind: EntityKind, data: Dict[str, Any]) -> AnyLine:
    """Validate a JSON dict into the line model for `kind`."""
    return LINE_MODELS[EntityKind(kind)].model_validate(data)


# =============================================================================
# Results
# =============================================================================

class HeaderResult(BaseModel):
    """Outcome of creating one ERP header (order, quote or BOM revision)."""
    success: bool = False
    header_id: Optional[str] = None
    error_message: Optional[str] = None
    status_code: Optional[str] = None
    source_not_found: bool = False
    request_payload: Optional[str] = None
    response_payload: Optional[str] = None


class LineResult(BaseModel):
    """Outcome for one line that reached the pipeline."""
    model_config = ConfigDict(frozen=True)

    entity_kind: EntityKind
    article_code: str
    group_key: str
    success: bool
    status: LineStatus
    error_message: Optional[str] = None
    header_id: Optional[str] = Field(default=None, description="ERP order / quote / revision id")
    failure_code: Optional[str] = None
    processed_at: datetime = Field(default_factory=datetime.now)
    request_payload: Optional[str] = None
    response_payload: Optional[str] = None

    # Revision lines only
    field_changed: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.status == LineStatus.DUPLICATE_SKIPPED

    @property
    def is_failure(self) -> bool:
        return not self.success and not self.is_duplicate


class DuplicateCheck(BaseModel):
    """Result of asking the ERP whether a header already exists."""
    found: bool = False
    existing_header_id: Optional[str] = None
    strategy: Optional[str] = None

    @classmethod
    def not_found(cls) -> "DuplicateCheck":
        return cls(found=False)
