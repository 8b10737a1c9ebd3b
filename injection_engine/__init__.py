"""Injection Engine - Extracted lines to MKG documents.

This package turns line records extracted from email into MKG sales orders,
quotes and BOM revisions.

Key Features:
- Structural filters and business-rule pre-validation
- Grouping by PO / RFQ / article revision in first-seen order
- Heuristic duplicate detection before any header is created
- Two-phase header-then-lines injection with classified failures
- Per-run summaries, progress reporting and cooperative cancellation

Usage:
    from injection_engine import InjectionPipeline, OrderLine

    pipeline = InjectionPipeline(client)
    run = await pipeline.run(orders=[OrderLine(article_code="ART-100", po_number="PO-1001")])

    run.orders.successful_injections
"""

from injection_engine.classification import (
    BUSINESS_ERROR_KEYWORDS,
    DEFAULT_CLASSIFIER,
    ErrorClassifier,
    KeywordErrorClassifier,
)
from injection_engine.duplicates import (
    LineGroup,
    OrderDuplicateDetector,
    QuoteDuplicateDetector,
    RevisionDuplicateDetector,
)
from injection_engine.injector import CancellationToken, HeaderLineInjector, InjectionSettings
from injection_engine.models import (
    DuplicateCheck,
    EntityKind,
    FailureCode,
    HeaderResult,
    LineResult,
    LineStatus,
    OrderLine,
    QuoteLine,
    RevisionLine,
    parse_line,
)
from injection_engine.orders import OrderInjector
from injection_engine.pipeline import InjectionPipeline, InjectionRun, parse_batch
from injection_engine.progress import (
    LoggingProgressSink,
    NullProgressSink,
    ProgressSink,
    RecordingProgressSink,
)
from injection_engine.quotes import QuoteInjector
from injection_engine.revisions import RevisionInjector
from injection_engine.rules import RuleValidator, structural_rejection
from injection_engine.summary import InjectionSummary, SummarySnapshot
from injection_engine.units import normalize_unit

__all__ = [
    # Models
    "EntityKind",
    "LineStatus",
    "FailureCode",
    "OrderLine",
    "QuoteLine",
    "RevisionLine",
    "HeaderResult",
    "LineResult",
    "DuplicateCheck",
    "parse_line",
    # Validation
    "RuleValidator",
    "structural_rejection",
    "normalize_unit",
    # Classification
    "ErrorClassifier",
    "KeywordErrorClassifier",
    "BUSINESS_ERROR_KEYWORDS",
    "DEFAULT_CLASSIFIER",
    # Duplicates
    "LineGroup",
    "OrderDuplicateDetector",
    "QuoteDuplicateDetector",
    "RevisionDuplicateDetector",
    # Injectors
    "HeaderLineInjector",
    "OrderInjector",
    "QuoteInjector",
    "RevisionInjector",
    "InjectionSettings",
    "CancellationToken",
    # Summary & progress
    "InjectionSummary",
    "SummarySnapshot",
    "ProgressSink",
    "NullProgressSink",
    "LoggingProgressSink",
    "RecordingProgressSink",
    # Pipeline
    "InjectionPipeline",
    "InjectionRun",
    "parse_batch",
]
