"""
Business Rules

Checks applied to extracted lines before anything is sent to the ERP:
- structural filters: placeholder article codes and invalid PO markers
  left behind by the extractor
- business rules: quantity, price, date, code format, price consistency
"""

from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional

from injection_engine.models import EntityKind, LineRecord
from injection_engine.parsing import is_blank, parse_date, parse_decimal


# =============================================================================
# Structural Filters
# =============================================================================

PLACEHOLDER_ARTICLE_PREFIXES = ("QUOTE-ITEM-", "RFQ-", "UNKNOWN-ARTICLE-")
PLACEHOLDER_ARTICLE_CODES = {"NUMBER"}
PLACEHOLDER_ARTICLE_SUFFIXES = ("DELIVER",)

INVALID_PO_NUMBERS = {"PO-0", "INVALID"}
INVALID_PO_FRAGMENT = "--"

PLACEHOLDER_QUOTE_ARTICLES = {"UNKNOWN-QUOTE"}
MIN_QUOTE_ARTICLE_LENGTH = 3


def is_placeholder_article(article_code: str) -> bool:
    """Article codes the extractor emits when it could not find a real one."""
    code = article_code.strip().upper()
    return (
        code.startswith(PLACEHOLDER_ARTICLE_PREFIXES)
        or code in PLACEHOLDER_ARTICLE_CODES
        or code.endswith(PLACEHOLDER_ARTICLE_SUFFIXES)
    )


def is_invalid_po_number(po_number: str) -> bool:
    """PO markers that never identify a real purchase order."""
    po = po_number.strip().upper()
    return po in INVALID_PO_NUMBERS or INVALID_PO_FRAGMENT in po


def structural_rejection(line: LineRecord) -> Optional[str]:
    """
    Reason a line cannot be grouped at all, or None if it can.

    These lines are dropped before grouping and are not business errors.
    """
    if not line.article_code.strip():
        return "Missing article code"
    if not line.group_key:
        return "Missing group key"

    kind = line.entity_kind
    if kind == EntityKind.ORDER:
        if is_placeholder_article(line.article_code):
            return f"Placeholder article code '{line.article_code}'"
        if is_invalid_po_number(line.group_key):
            return f"Invalid PO number '{line.group_key}'"
    elif kind == EntityKind.QUOTE:
        code = line.article_code.strip()
        if code.upper() in PLACEHOLDER_QUOTE_ARTICLES or len(code) < MIN_QUOTE_ARTICLE_LENGTH:
            return f"Placeholder article code '{line.article_code}'"

    return None


# =============================================================================
# Business Rules
# =============================================================================

QUANTITY_NOT_POSITIVE = "Quantity must be positive"
QUANTITY_NOT_A_NUMBER = "Quantity is not a number"
NEGATIVE_UNIT_PRICE = "Unit price cannot be negative"
DELIVERY_DATE_IN_PAST = "Delivery date cannot be in the past"
ARTICLE_CODE_TOO_SHORT = "Article code too short"
PRICE_MISMATCH = "Price calculation mismatch"


class RuleValidator:
    """
    Applies business invariants to a line.

    Every rule is evaluated; the returned list holds all violations.
    An empty list means the line may be injected.
    """

    def __init__(
        self,
        today: Optional[Callable[[], date]] = None,
        price_tolerance: Decimal = Decimal("0.01"),
        min_article_length: int = 3,
    ):
        self._today = today or date.today
        self.price_tolerance = price_tolerance
        self.min_article_length = min_article_length

    def validate(self, line: LineRecord) -> List[str]:
        violations: List[str] = []

        quantity = parse_decimal(line.quantity)
        if not is_blank(line.quantity):
            if quantity is None:
                violations.append(QUANTITY_NOT_A_NUMBER)
            elif quantity <= 0:
                violations.append(QUANTITY_NOT_POSITIVE)

        unit_price = parse_decimal(line.unit_price_text)
        if unit_price is not None and unit_price < 0:
            violations.append(NEGATIVE_UNIT_PRICE)

        delivery = parse_date(line.delivery_date_text)
        if delivery is not None and delivery < self._today():
            violations.append(DELIVERY_DATE_IN_PAST)

        if len(line.article_code.strip()) < self.min_article_length:
            violations.append(ARTICLE_CODE_TOO_SHORT)

        total_price = parse_decimal(line.total_price_text)
        if unit_price is not None and quantity is not None and total_price is not None:
            if abs(unit_price * quantity - total_price) > self.price_tolerance:
                violations.append(PRICE_MISMATCH)

        return violations

    def is_valid(self, line: LineRecord) -> bool:
        return not self.validate(line)
