"""
Injection Run Workflow

Runs one extracted batch into MKG:
ORDERS → QUOTES → REVISIONS

Each kind is one inject_batch activity on the erp-injection queue. A kind
finishes before the next starts. Progress is exposed through the
`progress` query; cancelling the workflow cancels the running activity,
which stops after the current line.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from activities.inject import inject_batch, InjectBatchInput


TASK_QUEUE = "erp-injection"

# (entity kind, input attribute), in execution order
RUN_ORDER = (
    ("order", "orders"),
    ("quote", "quotes"),
    ("revision", "revisions"),
)


@dataclass
class InjectionRunInput:
    """Input for InjectionRunWorkflow"""
    run_id: str
    orders: List[Dict[str, Any]] = field(default_factory=list)
    quotes: List[Dict[str, Any]] = field(default_factory=list)
    revisions: List[Dict[str, Any]] = field(default_factory=list)
    max_concurrent_groups: int = 1


@workflow.defn
class InjectionRunWorkflow:
    """
    One injection run across all entity kinds.

    Every activity gets exactly one attempt; injection is not idempotent.
    """

    def __init__(self):
        self.status = "PENDING"
        self.current_kind: Optional[str] = None
        self.summaries: Dict[str, Dict[str, Any]] = {}
        self.error: Optional[str] = None

    @workflow.run
    async def run(self, input: InjectionRunInput) -> Dict[str, Any]:
        workflow.logger.info(f"Starting injection run {input.run_id}")
        self.status = "RUNNING"

        activity_options = {
            "start_to_close_timeout": timedelta(hours=1),
            "heartbeat_timeout": timedelta(minutes=5),
            "retry_policy": RetryPolicy(
                maximum_attempts=1,
                non_retryable_error_types=["MkgAuthenticationError", "MkgConfigError", "ValidationError"],
            ),
        }

        try:
            for kind, attribute in RUN_ORDER:
                lines = getattr(input, attribute)
                if not lines:
                    continue

                self.current_kind = kind
                workflow.logger.info(f"Injecting {len(lines)} {kind} line(s)")
                self.summaries[kind] = await workflow.execute_activity(
                    inject_batch,
                    InjectBatchInput(
                        run_id=input.run_id,
                        entity_kind=kind,
                        lines=lines,
                        max_concurrent_groups=input.max_concurrent_groups,
                    ),
                    **activity_options,
                )
        except asyncio.CancelledError:
            self.status = "CANCELLED"
            workflow.logger.warning(f"Injection run {input.run_id} cancelled during {self.current_kind}")
            raise
        except Exception as e:
            self.status = "FAILED"
            self.error = str(e)
            workflow.logger.error(f"Injection run {input.run_id} failed during {self.current_kind}: {e}")
            raise

        self.status = "COMPLETED"
        self.current_kind = None
        workflow.logger.info(f"Injection run {input.run_id} completed")
        return self.progress()

    @workflow.query
    def progress(self) -> Dict[str, Any]:
        """Status, the kind in flight, and the summaries finished so far."""
        return {
            "status": self.status,
            "current_kind": self.current_kind,
            "completed_kinds": list(self.summaries),
            "summaries": self.summaries,
            "error": self.error,
        }
