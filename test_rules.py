"""
Parsing, structural filter and business rule tests.
"""

from datetime import date
from decimal import Decimal

import pytest


TODAY = date(2025, 6, 2)


def order(**fields):
    from injection_engine.models import OrderLine
    data = {"article_code": "ART-100", "po_number": "PO-1001", "quantity": "2"}
    data.update(fields)
    return OrderLine(**data)


def quote(**fields):
    from injection_engine.models import QuoteLine
    data = {"article_code": "ART-200", "rfq_number": "RFQ-5", "quantity": "1"}
    data.update(fields)
    return QuoteLine(**data)


class TestParsing:
    """Numbers and dates in mixed notation."""

    @pytest.mark.parametrize("raw,expected", [
        ("7", Decimal("7")),
        ("12,5", Decimal("12.5")),
        ("€ 1.234,50", Decimal("1234.50")),
        ("$1,234.50", Decimal("1234.50")),
        ("EUR 3.00", Decimal("3.00")),
        (4, Decimal("4")),
        ("-1", Decimal("-1")),
    ])
    def test_parse_decimal(self, raw, expected):
        from injection_engine.parsing import parse_decimal
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "inf"])
    def test_parse_decimal_unreadable(self, raw):
        from injection_engine.parsing import parse_decimal
        assert parse_decimal(raw) is None

    @pytest.mark.parametrize("raw", [
        "2025-11-15",
        "2025-11-15T08:00:00",
        "15-11-2025",
        "15/11/2025",
        "15.11.2025",
        "20251115",
    ])
    def test_parse_date(self, raw):
        from injection_engine.parsing import parse_date
        assert parse_date(raw) == date(2025, 11, 15)

    def test_parse_date_unreadable(self):
        from injection_engine.parsing import parse_date
        assert parse_date("next week") is None
        assert parse_date("2025-02-30") is None
        assert parse_date(None) is None

    def test_mkg_date_or_default(self):
        from injection_engine.parsing import mkg_date_or_default
        assert mkg_date_or_default("15-11-2025", TODAY, 14) == "2025-11-15"
        assert mkg_date_or_default(None, TODAY, 14) == "2025-06-16"
        assert mkg_date_or_default("soon", TODAY, 30) == "2025-07-02"

    def test_to_float(self):
        from injection_engine.parsing import to_float
        assert to_float("12,50") == 12.5
        assert to_float(None) == 0.0


class TestStructuralRejection:
    """Lines that cannot be grouped are dropped before validation."""

    def test_valid_order(self):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(order()) is None

    def test_missing_article(self):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(order(article_code="  ")) == "Missing article code"

    def test_missing_group_key(self):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(order(po_number="")) == "Missing group key"

    @pytest.mark.parametrize("code", ["QUOTE-ITEM-1", "RFQ-22", "UNKNOWN-ARTICLE-3", "NUMBER", "PLEASE-DELIVER"])
    def test_placeholder_order_articles(self, code):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(order(article_code=code)).startswith("Placeholder article code")

    @pytest.mark.parametrize("po", ["PO-0", "invalid", "PO--12"])
    def test_invalid_po_numbers(self, po):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(order(po_number=po)).startswith("Invalid PO number")

    def test_placeholder_quote_articles(self):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(quote(article_code="UNKNOWN-QUOTE")) is not None
        assert structural_rejection(quote(article_code="AB")) is not None
        assert structural_rejection(quote()) is None

    def test_quote_keeps_rfq_prefixed_article(self):
        from injection_engine.rules import structural_rejection
        assert structural_rejection(quote(article_code="RFQ-ART-1")) is None

    def test_revision_needs_article(self):
        from injection_engine.models import RevisionLine
        from injection_engine.rules import structural_rejection
        assert structural_rejection(RevisionLine(article_code="")) == "Missing article code"
        assert structural_rejection(RevisionLine(article_code="BOM-1")) is None


class TestRuleValidator:
    """Business invariants; every violation is reported."""

    @pytest.fixture
    def validator(self):
        from injection_engine.rules import RuleValidator
        return RuleValidator(today=lambda: TODAY)

    def test_valid_line(self, validator):
        line = order(unit_price="10", total_price="20", delivery_date="2025-06-30")
        assert validator.validate(line) == []
        assert validator.is_valid(line)

    def test_missing_quantity_allowed(self, validator):
        assert validator.validate(order(quantity=None)) == []

    @pytest.mark.parametrize("quantity", ["0", "-3"])
    def test_quantity_not_positive(self, validator, quantity):
        from injection_engine.rules import QUANTITY_NOT_POSITIVE
        assert validator.validate(order(quantity=quantity)) == [QUANTITY_NOT_POSITIVE]

    def test_quantity_not_a_number(self, validator):
        from injection_engine.rules import QUANTITY_NOT_A_NUMBER
        assert validator.validate(order(quantity="a few")) == [QUANTITY_NOT_A_NUMBER]

    def test_negative_price(self, validator):
        from injection_engine.rules import NEGATIVE_UNIT_PRICE
        assert validator.validate(order(unit_price="-1")) == [NEGATIVE_UNIT_PRICE]

    def test_delivery_in_past(self, validator):
        from injection_engine.rules import DELIVERY_DATE_IN_PAST
        assert validator.validate(order(delivery_date="2025-06-01")) == [DELIVERY_DATE_IN_PAST]
        assert validator.validate(order(delivery_date="2025-06-02")) == []

    def test_unreadable_delivery_date_ignored(self, validator):
        assert validator.validate(order(delivery_date="asap")) == []

    def test_article_too_short(self, validator):
        from injection_engine.models import RevisionLine
        from injection_engine.rules import ARTICLE_CODE_TOO_SHORT
        assert validator.validate(RevisionLine(article_code="AB")) == [ARTICLE_CODE_TOO_SHORT]

    def test_price_mismatch(self, validator):
        from injection_engine.rules import PRICE_MISMATCH
        assert validator.validate(order(unit_price="10", total_price="25")) == [PRICE_MISMATCH]
        assert validator.validate(order(unit_price="10", total_price="20,01")) == []

    def test_quote_uses_quoted_price(self, validator):
        from injection_engine.rules import NEGATIVE_UNIT_PRICE, DELIVERY_DATE_IN_PAST
        line = quote(quoted_price="-5", requested_delivery_date="01-01-2024")
        assert validator.validate(line) == [NEGATIVE_UNIT_PRICE, DELIVERY_DATE_IN_PAST]

    def test_all_violations_reported(self, validator):
        line = order(quantity="0", unit_price="-1", delivery_date="2020-01-01")
        assert len(validator.validate(line)) == 3


class TestErrorClassification:
    """ERP rejection text decides business vs technical failure."""

    @pytest.mark.parametrize("message", [
        "Invalid quantity for article",
        "Record ALREADY EXISTS",
        "Artikel niet gevonden",
        "Credit limit exceeded",
    ])
    def test_business_messages(self, message):
        from injection_engine.classification import DEFAULT_CLASSIFIER
        from injection_engine.models import LineStatus
        assert DEFAULT_CLASSIFIER.classify(message) == LineStatus.BUSINESS_RULE_VIOLATION

    @pytest.mark.parametrize("message", [None, "", "Internal server error", "Connection reset"])
    def test_technical_messages(self, message):
        from injection_engine.classification import DEFAULT_CLASSIFIER
        from injection_engine.models import LineStatus
        assert DEFAULT_CLASSIFIER.classify(message) == LineStatus.TECHNICAL_FAILURE

    def test_custom_keywords(self):
        from injection_engine.classification import KeywordErrorClassifier
        from injection_engine.models import LineStatus
        classifier = KeywordErrorClassifier(keywords=("Blocked",))
        assert classifier.matched_keyword("Customer blocked") == "blocked"
        assert classifier.classify("invalid") == LineStatus.TECHNICAL_FAILURE

    def test_status_code_does_not_decide(self):
        from injection_engine.classification import DEFAULT_CLASSIFIER
        from injection_engine.models import LineStatus
        assert DEFAULT_CLASSIFIER.classify("Bad Request", 400) == LineStatus.TECHNICAL_FAILURE
        assert DEFAULT_CLASSIFIER.classify("validation failed", 500) == LineStatus.BUSINESS_RULE_VIOLATION
