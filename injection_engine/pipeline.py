"""Injection pipeline.

Runs one batch through the three injectors, orders first, then quotes,
then revisions. One kind finishes before the next begins. All injectors
share the session client and the customer resolver (and thereby its cache).
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from connectors.erp_base import ERPClient
from core.observability.logging import get_logger, with_correlation
from customer_resolver import CustomerCache, CustomerResolver, resolver_config_for
from injection_engine.classification import DEFAULT_CLASSIFIER, ErrorClassifier
from injection_engine.injector import CancellationToken, HeaderLineInjector, InjectionSettings
from injection_engine.models import AnyLine, EntityKind, parse_line
from injection_engine.orders import OrderInjector
from injection_engine.progress import NullProgressSink, ProgressSink
from injection_engine.quotes import QuoteInjector
from injection_engine.revisions import RevisionInjector
from injection_engine.summary import SummarySnapshot

logger = get_logger(__name__)

KIND_ORDER: Sequence[EntityKind] = (EntityKind.ORDER, EntityKind.QUOTE, EntityKind.REVISION)

# Batch document keys per entity kind
BATCH_KEYS: Dict[EntityKind, str] = {
    EntityKind.ORDER: "orders",
    EntityKind.QUOTE: "quotes",
    EntityKind.REVISION: "revisions",
}


class InjectionRun(BaseModel):
    """The summaries of one pipeline run, one per entity kind that had lines."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    cancelled: bool = False
    summaries: Dict[EntityKind, SummarySnapshot] = Field(default_factory=dict)

    @property
    def orders(self) -> Optional[SummarySnapshot]:
        return self.summaries.get(EntityKind.ORDER)

    @property
    def quotes(self) -> Optional[SummarySnapshot]:
        return self.summaries.get(EntityKind.QUOTE)

    @property
    def revisions(self) -> Optional[SummarySnapshot]:
        return self.summaries.get(EntityKind.REVISION)

    def totals(self) -> Dict[str, int]:
        keys = ("successful_injections", "failed_injections", "duplicates_filtered", "rejected_lines")
        return {key: sum(getattr(s, key) for s in self.summaries.values()) for key in keys}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "cancelled": self.cancelled,
            "totals": self.totals(),
            "summaries": {kind.value: s.to_dict() for kind, s in self.summaries.items()},
        }


def parse_batch(batch: Dict[str, Any]) -> Dict[EntityKind, List[AnyLine]]:
    """Turn {"orders": [...], "quotes": [...], "revisions": [...]} into line models."""
    lines: Dict[EntityKind, List[AnyLine]] = {}
    for kind, key in BATCH_KEYS.items():
        items = batch.get(key) or []
        lines[kind] = [parse_line(kind, item) for item in items]
    return lines


class InjectionPipeline:
    """Per-run orchestration across entity kinds.

    Usage:
        async with MkgApiClient(MkgConfig.from_env()) as client:
            pipeline = InjectionPipeline(client, progress=LoggingProgressSink())
            run = await pipeline.run(orders=order_lines, quotes=quote_lines)
    """

    def __init__(
        self,
        client: ERPClient,
        resolver: Optional[CustomerResolver] = None,
        cache: Optional[CustomerCache] = None,
        progress: Optional[ProgressSink] = None,
        settings: Optional[InjectionSettings] = None,
        classifier: ErrorClassifier = DEFAULT_CLASSIFIER,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.resolver = resolver or CustomerResolver(
            client, cache=cache, config=resolver_config_for(client.config)
        )
        self.progress = progress or NullProgressSink()
        self.settings = settings or InjectionSettings()
        self.classifier = classifier
        self._clock = clock
        self.last_run: Optional[InjectionRun] = None

    def injector_for(self, kind: EntityKind) -> HeaderLineInjector:
        injector_class = {
            EntityKind.ORDER: OrderInjector,
            EntityKind.QUOTE: QuoteInjector,
            EntityKind.REVISION: RevisionInjector,
        }[EntityKind(kind)]
        return injector_class(
            self.client,
            self.resolver,
            classifier=self.classifier,
            progress=self.progress,
            settings=self.settings,
            clock=self._clock,
        )

    async def run(
        self,
        orders: Iterable[AnyLine] = (),
        quotes: Iterable[AnyLine] = (),
        revisions: Iterable[AnyLine] = (),
        cancel_token: Optional[CancellationToken] = None,
        run_id: Optional[str] = None,
    ) -> InjectionRun:
        """Inject every kind that has lines.

        Raises:
            asyncio.CancelledError: after storing the partial run in last_run
        """
        token = cancel_token or CancellationToken()
        run = InjectionRun(run_id=run_id or uuid.uuid4().hex, started_at=self._clock())
        self.last_run = run
        batches = {
            EntityKind.ORDER: list(orders),
            EntityKind.QUOTE: list(quotes),
            EntityKind.REVISION: list(revisions),
        }

        with with_correlation(run_id=run.run_id):
            logger.info(
                "Injection run started",
                extra_fields={kind.value: len(lines) for kind, lines in batches.items()},
            )
            for kind in KIND_ORDER:
                lines = batches[kind]
                if not lines:
                    continue
                if token.cancelled:
                    break

                injector = self.injector_for(kind)
                try:
                    run.summaries[kind] = await injector.inject(lines, token)
                except asyncio.CancelledError:
                    if injector.last_summary is not None:
                        run.summaries[kind] = injector.last_summary.snapshot()
                    run.cancelled = True
                    run.finished_at = self._clock()
                    logger.warning("Injection run cancelled")
                    raise

            run.cancelled = token.cancelled
            run.finished_at = self._clock()
            logger.info("Injection run finished", extra_fields=run.totals())
        return run

    async def run_batch(
        self,
        batch: Dict[str, Any],
        kinds: Optional[Sequence[EntityKind]] = None,
        cancel_token: Optional[CancellationToken] = None,
        run_id: Optional[str] = None,
    ) -> InjectionRun:
        """Run a JSON batch document, optionally restricted to some kinds."""
        lines = parse_batch(batch)
        if kinds is not None:
            wanted = {EntityKind(kind) for kind in kinds}
            lines = {kind: (items if kind in wanted else []) for kind, items in lines.items()}
        return await self.run(
            orders=lines[EntityKind.ORDER],
            quotes=lines[EntityKind.QUOTE],
            revisions=lines[EntityKind.REVISION],
            cancel_token=cancel_token,
            run_id=run_id,
        )
