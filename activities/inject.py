"""
Injection Activities

Activities that talk to MKG:
- inject_batch: inject the lines of one entity kind for one run
- check_erp_connection: login + cheap query, used by health checks

Each activity opens its own MKG session from environment configuration.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from temporalio import activity

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from connectors.mkg import MkgApiClient, MkgConfig
from core.observability.logging import with_correlation
from injection_engine.injector import InjectionSettings
from injection_engine.models import EntityKind, parse_line
from injection_engine.pipeline import BATCH_KEYS, InjectionPipeline
from injection_engine.progress import RecordingProgressSink


# =============================================================================
# Activity Input/Output Models
# =============================================================================

@dataclass
class InjectBatchInput:
    """Input for inject_batch activity"""
    run_id: str
    entity_kind: str  # "order", "quote" or "revision"
    lines: List[Dict[str, Any]] = field(default_factory=list)
    max_concurrent_groups: int = 1


@dataclass
class HeartbeatProgressSink(RecordingProgressSink):
    """Records progress and forwards it as activity heartbeat details.

    Heartbeating is also how the activity learns it was cancelled.
    """
    entity_kind: str = ""

    def _beat(self) -> None:
        details = self.to_dict()
        details["entity_kind"] = self.entity_kind
        activity.heartbeat(details)

    def on_progress(self, message: str) -> None:
        super().on_progress(message)
        self._beat()

    def on_injection_error(self) -> None:
        super().on_injection_error()
        self._beat()

    def on_business_error(self, source: str, detail: str) -> None:
        super().on_business_error(source, detail)
        self._beat()

    def on_duplicate(self, count: int) -> None:
        super().on_duplicate(count)
        self._beat()


# =============================================================================
# Activities
# =============================================================================

@activity.defn
async def inject_batch(input: InjectBatchInput) -> Dict[str, Any]:
    """
    Inject the lines of one entity kind into MKG.

    Returns the summary snapshot as a dict. Injection is not idempotent, so
    the workflow runs this with a single attempt.
    """
    kind = EntityKind(input.entity_kind)
    info = activity.info()
    activity.logger.info(f"Injecting {len(input.lines)} {kind.value} line(s) for run {input.run_id}")

    lines = [parse_line(kind, item) for item in input.lines]
    progress = HeartbeatProgressSink(entity_kind=kind.value)
    settings = InjectionSettings.from_env()
    settings.max_concurrent_groups = max(1, input.max_concurrent_groups)

    with with_correlation(
        workflow_id=info.workflow_id,
        workflow_run_id=info.workflow_run_id,
        activity_id=info.activity_id,
        activity_name=info.activity_type,
        task_queue=info.task_queue,
    ):
        async with MkgApiClient(MkgConfig.from_env()) as client:
            pipeline = InjectionPipeline(client, progress=progress, settings=settings)
            try:
                run = await pipeline.run(run_id=input.run_id, **{BATCH_KEYS[kind]: lines})
            except asyncio.CancelledError:
                partial = pipeline.last_run
                if partial is not None and kind in partial.summaries:
                    snapshot = partial.summaries[kind]
                    activity.logger.warning(
                        f"Injection of {kind.value} lines cancelled after "
                        f"{len(snapshot.line_results)} result(s)"
                    )
                raise

    snapshot = run.summaries.get(kind)
    if snapshot is None:
        return {"entity_kind": kind.value, "total_groups": 0, "line_results": []}

    activity.logger.info(
        f"Injected {kind.value} lines: {snapshot.successful_injections} ok, "
        f"{snapshot.failed_injections} failed, {snapshot.duplicates_filtered} duplicate(s), "
        f"{snapshot.rejected_lines} rejected"
    )
    return snapshot.to_dict()


@activity.defn
async def check_erp_connection() -> Dict[str, Any]:
    """Log in to MKG and read one debtor row."""
    async with MkgApiClient(MkgConfig.from_env()) as client:
        status = await client.test_connection()
    activity.logger.info(f"MKG connection status: {status.value}")
    return {"status": status.value}
