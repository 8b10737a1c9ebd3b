"""Header/line injection.

HeaderLineInjector drives the two-phase protocol shared by orders, quotes
and BOM revisions:

    NEW -> duplicate check -> DUPLICATE_SKIPPED
                           -> HEADER_CREATING -> HEADER_FAILED
                                              -> HEADER_CREATED -> LINES_INJECTING -> COMPLETED

Subclasses supply the duplicate detector and the header/line payloads.
Line failures are recorded and the group continues; group failures are
recorded and the run continues.
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from connectors.erp_base import ERPClient
from connectors.mkg.mkg_client import MkgApiError
from connectors.mkg.mkg_models import error_message_from_body, extract_header_id, has_error_messages
from core.observability.logging import get_logger, with_correlation
from customer_resolver import CustomerInfo, CustomerResolver
from injection_engine.classification import DEFAULT_CLASSIFIER, ErrorClassifier
from injection_engine.duplicates import DuplicateDetector, LineGroup
from injection_engine.models import (
    AnyLine,
    EntityKind,
    FailureCode,
    HeaderResult,
    LineResult,
    LineStatus,
)
from injection_engine.progress import NullProgressSink, ProgressSink
from injection_engine.rules import RuleValidator, structural_rejection
from injection_engine.summary import InjectionSummary, SummarySnapshot

logger = get_logger(__name__)


# =============================================================================
# Settings & Cancellation
# =============================================================================

@dataclass
class InjectionSettings:
    """Tunables for header defaults and group concurrency."""
    order_lead_days: int = 14
    quote_validity_days: int = 30
    max_concurrent_groups: int = 1

    @classmethod
    def from_env(cls) -> "InjectionSettings":
        return cls(
            order_lead_days=int(os.getenv("INJECTION_ORDER_LEAD_DAYS", "14")),
            quote_validity_days=int(os.getenv("INJECTION_QUOTE_VALIDITY_DAYS", "30")),
            max_concurrent_groups=max(1, int(os.getenv("INJECTION_MAX_CONCURRENT_GROUPS", "1"))),
        )


class CancellationToken:
    """Cooperative stop signal checked before every group and every line."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class GroupState(str, Enum):
    NEW = "NEW"
    DUPLICATE_SKIPPED = "DUPLICATE_SKIPPED"
    HEADER_CREATING = "HEADER_CREATING"
    HEADER_FAILED = "HEADER_FAILED"
    HEADER_CREATED = "HEADER_CREATED"
    LINES_INJECTING = "LINES_INJECTING"
    COMPLETED = "COMPLETED"


@dataclass
class GroupRun:
    """Mutable state of one group while it is processed."""
    group: LineGroup
    state: GroupState = GroupState.NEW
    header_id: Optional[str] = None
    recorded: int = 0

    def advance(self, state: GroupState) -> None:
        logger.debug(f"Group {self.group.key}: {self.state.value} -> {state.value}")
        self.state = state


def dump_payload(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


# =============================================================================
# Injector
# =============================================================================

class HeaderLineInjector(ABC):
    """Base injector for one entity kind.

    Usage:
        injector = OrderInjector(client, resolver, progress=LoggingProgressSink())
        snapshot = await injector.inject(order_lines)
    """

    entity_kind: EntityKind
    label: str = "document"

    def __init__(
        self,
        client: ERPClient,
        resolver: CustomerResolver,
        detector: Optional[DuplicateDetector] = None,
        validator: Optional[RuleValidator] = None,
        classifier: ErrorClassifier = DEFAULT_CLASSIFIER,
        progress: Optional[ProgressSink] = None,
        settings: Optional[InjectionSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.resolver = resolver
        self.detector = detector or self.default_detector()
        self._clock = clock
        self.validator = validator or RuleValidator(today=self.today)
        self.classifier = classifier
        self.progress = progress or NullProgressSink()
        self.settings = settings or InjectionSettings()
        self.last_summary: Optional[InjectionSummary] = None

    # -------------------------------------------------------------------------
    # Entity-specific hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def default_detector(self) -> DuplicateDetector:
        ...

    @abstractmethod
    async def create_header(self, group: LineGroup, customer: CustomerInfo) -> HeaderResult:
        ...

    def build_line_request(
        self, line: AnyLine, header: HeaderResult, customer: CustomerInfo
    ) -> Tuple[str, Dict[str, Any]]:
        """Endpoint and JSON body that create one line under `header`."""
        raise NotImplementedError(f"{type(self).__name__} does not post lines")

    def line_details(self, line: AnyLine) -> Dict[str, Any]:
        """Extra LineResult fields for this entity kind."""
        return {}

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def today(self) -> date:
        return self._clock().date()

    async def inject(
        self,
        lines: Iterable[AnyLine],
        cancel_token: Optional[CancellationToken] = None,
    ) -> SummarySnapshot:
        """Inject a batch of lines of this injector's entity kind.

        Returns:
            The finished summary snapshot (partial and marked cancelled if
            the token was set)

        Raises:
            asyncio.CancelledError: after finalizing the partial summary
        """
        token = cancel_token or CancellationToken()
        summary = InjectionSummary(self.entity_kind, clock=self._clock)
        self.last_summary = summary

        try:
            groups = self.prepare(lines, summary)
            summary.total_groups = len(groups)
            if groups:
                self.progress.on_progress(f"Injecting {len(groups)} {self.label} group(s)")

            limit = self.settings.max_concurrent_groups
            if limit <= 1:
                for group in groups:
                    if token.cancelled:
                        break
                    await self._run_group(group, summary, token)
            else:
                semaphore = asyncio.Semaphore(limit)

                async def bounded(group: LineGroup) -> None:
                    async with semaphore:
                        if token.cancelled:
                            return
                        await self._run_group(group, summary, token)

                await asyncio.gather(*(bounded(group) for group in groups))

            if token.cancelled:
                summary.cancelled = True
                logger.warning(f"{self.label.capitalize()} injection cancelled")
                self.progress.on_progress(f"{self.label.capitalize()} injection cancelled")
        except asyncio.CancelledError:
            summary.cancelled = True
            summary.finish()
            raise
        except Exception as e:
            summary.add_error(f"{self.label.capitalize()} injection aborted: {e}")
            self.progress.on_injection_error()
            summary.finish()
            raise

        snapshot = summary.finish()
        logger.info(
            f"{self.label.capitalize()} injection finished",
            extra_fields={
                "groups": snapshot.total_groups,
                "successful": snapshot.successful_injections,
                "failed": snapshot.failed_injections,
                "duplicates": snapshot.duplicates_filtered,
                "rejected": snapshot.rejected_lines,
            },
        )
        return snapshot

    def prepare(self, lines: Iterable[AnyLine], summary: InjectionSummary) -> List[LineGroup]:
        """Filter lines and group the survivors by key in first-seen order."""
        groups: Dict[str, LineGroup] = {}

        for line in lines:
            reason = structural_rejection(line)
            if reason:
                logger.info(f"Skipping line {line.article_code!r}: {reason}")
                summary.reject()
                continue

            violations = self.validator.validate(line)
            if violations:
                logger.warning(
                    f"Line {line.article_code} failed pre-validation",
                    extra_fields={"group_key": line.group_key, "violations": violations},
                )
                self.progress.on_business_error(
                    "Pre-Validation", f"{line.article_code}: {'; '.join(violations)}"
                )
                summary.reject()
                continue

            key = line.group_key
            group = groups.get(key)
            if group is None:
                group = LineGroup(key=key, index=len(groups))
                groups[key] = group
            group.lines.append(line)

        return list(groups.values())

    async def _run_group(self, group: LineGroup, summary: InjectionSummary, token: CancellationToken) -> None:
        run = GroupRun(group)
        with with_correlation(entity_kind=self.entity_kind.value, group_key=group.key):
            try:
                completed = await self._process_group(run, summary, token)
            except Exception as e:
                logger.exception(f"{self.label.capitalize()} {group.key} failed in state {run.state.value}")
                summary.add_error(f"{self.label.capitalize()} {group.key}: {e}")
                for line in group.lines[run.recorded:]:
                    self._record(run, summary, self._result(
                        line,
                        group,
                        LineStatus.TECHNICAL_FAILURE,
                        header_id=run.header_id,
                        error_message=f"Group processing failed: {e}",
                        failure_code=FailureCode.GROUP_ERROR.value,
                    ))
                summary.group_completed(False)
                return

            if completed is not None:
                summary.group_completed(completed)

    async def _process_group(
        self, run: GroupRun, summary: InjectionSummary, token: CancellationToken
    ) -> Optional[bool]:
        """Walk one group through the state machine.

        Returns True/False for a finished group, None if cancelled midway.
        """
        group = run.group
        self.progress.on_progress(f"Checking {self.label} {group.key} ({len(group)} line(s))")

        check = await self.detector.exists(group)
        if check.found:
            run.advance(GroupState.DUPLICATE_SKIPPED)
            run.header_id = check.existing_header_id
            message = f"{self.label.capitalize()} {group.key} already exists in MKG"
            if check.existing_header_id:
                message += f" as {check.existing_header_id}"
            for line in group.lines:
                self._record(run, summary, self._result(
                    line,
                    group,
                    LineStatus.DUPLICATE_SKIPPED,
                    header_id=check.existing_header_id,
                    error_message=message,
                    failure_code=FailureCode.DUPLICATE_SKIPPED.value,
                ))
            self.progress.on_duplicate(len(group))
            return True

        if token.cancelled:
            return None

        run.advance(GroupState.HEADER_CREATING)
        customer = await self.resolver.resolve(group.first.email_domain)
        header = await self.create_header(group, customer)

        if not header.success:
            run.advance(GroupState.HEADER_FAILED)
            if header.source_not_found:
                status, code = LineStatus.SOURCE_NOT_FOUND, header.status_code
            else:
                status, code = LineStatus.TECHNICAL_FAILURE, FailureCode.HEADER_CREATION_FAILED.value
            logger.warning(f"Header for {group.key} not created: {header.error_message}")
            summary.add_error(f"{self.label.capitalize()} {group.key}: {header.error_message}")
            for line in group.lines:
                self._record(run, summary, self._result(
                    line,
                    group,
                    status,
                    error_message=header.error_message,
                    failure_code=code,
                    request_payload=header.request_payload,
                    response_payload=header.response_payload,
                ))
                self.progress.on_injection_error()
            return False

        run.advance(GroupState.HEADER_CREATED)
        run.header_id = header.header_id
        logger.info(f"Created {self.label} header {header.header_id} for {group.key}")

        run.advance(GroupState.LINES_INJECTING)
        for line in group.lines:
            if token.cancelled:
                return None
            result = await self._inject_line_safely(line, group, header, customer)
            self._record(run, summary, result)
            if result.status == LineStatus.BUSINESS_RULE_VIOLATION:
                self.progress.on_business_error("ERP Response", result.error_message or "")
            elif result.status == LineStatus.TECHNICAL_FAILURE:
                self.progress.on_injection_error()

        run.advance(GroupState.COMPLETED)
        self.progress.on_progress(f"{self.label.capitalize()} {group.key} done")
        return True

    # -------------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------------

    async def _inject_line_safely(
        self, line: AnyLine, group: LineGroup, header: HeaderResult, customer: CustomerInfo
    ) -> LineResult:
        try:
            return await self.inject_line(line, group, header, customer)
        except Exception as e:
            logger.exception(f"Line {line.article_code} raised")
            return self._result(
                line,
                group,
                LineStatus.TECHNICAL_FAILURE,
                header_id=header.header_id,
                error_message=str(e) or type(e).__name__,
                failure_code=FailureCode.EXCEPTION.value,
            )

    async def inject_line(
        self, line: AnyLine, group: LineGroup, header: HeaderResult, customer: CustomerInfo
    ) -> LineResult:
        """Create one line; ERP rejections are classified, not raised."""
        endpoint, payload = self.build_line_request(line, header, customer)
        request_text = dump_payload(payload)

        try:
            body = await self.client.post(endpoint, payload)
        except MkgApiError as e:
            code = str(e.status_code) if e.status_code else FailureCode.EXCEPTION.value
            return self._classified_failure(
                line, group, header, str(e), e.status_code or None, code, request_text, e.response_body or None
            )

        response_text = dump_payload(body)
        if has_error_messages(body):
            return self._classified_failure(
                line,
                group,
                header,
                error_message_from_body(body),
                None,
                FailureCode.ERP_MESSAGE.value,
                request_text,
                response_text,
            )

        return self._result(
            line,
            group,
            LineStatus.SUCCESS,
            header_id=header.header_id,
            request_payload=request_text,
            response_payload=response_text,
        )

    def _classified_failure(
        self,
        line: AnyLine,
        group: LineGroup,
        header: HeaderResult,
        message: str,
        status_code: Optional[int],
        failure_code: str,
        request_payload: Optional[str],
        response_payload: Optional[str],
    ) -> LineResult:
        status = self.classifier.classify(message, status_code)
        logger.warning(f"Line {line.article_code} rejected ({status.value}): {message}")
        return self._result(
            line,
            group,
            status,
            header_id=header.header_id,
            error_message=message,
            failure_code=failure_code,
            request_payload=request_payload,
            response_payload=response_payload,
        )

    # -------------------------------------------------------------------------
    # Headers
    # -------------------------------------------------------------------------

    async def post_header(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        table: str,
        id_field: str,
        missing_id_message: str,
    ) -> HeaderResult:
        """POST a header and pull the assigned id out of the response."""
        request_text = dump_payload(payload)
        try:
            body = await self.client.post(endpoint, payload)
        except MkgApiError as e:
            return HeaderResult(
                success=False,
                error_message=str(e),
                status_code=str(e.status_code) if e.status_code else None,
                request_payload=request_text,
                response_payload=e.response_body or None,
            )

        response_text = dump_payload(body)
        if has_error_messages(body):
            return HeaderResult(
                success=False,
                error_message=error_message_from_body(body),
                request_payload=request_text,
                response_payload=response_text,
            )

        header_id = extract_header_id(body, table, id_field)
        if not header_id:
            return HeaderResult(
                success=False,
                error_message=missing_id_message,
                request_payload=request_text,
                response_payload=response_text,
            )

        return HeaderResult(
            success=True,
            header_id=header_id,
            request_payload=request_text,
            response_payload=response_text,
        )

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def _result(self, line: AnyLine, group: LineGroup, status: LineStatus, **fields) -> LineResult:
        return LineResult(
            entity_kind=self.entity_kind,
            article_code=line.article_code,
            group_key=group.key,
            success=status == LineStatus.SUCCESS,
            status=status,
            processed_at=self._clock(),
            **self.line_details(line),
            **fields,
        )

    @staticmethod
    def _record(run: GroupRun, summary: InjectionSummary, result: LineResult) -> None:
        summary.record(result, run.group.index)
        run.recorded += 1
