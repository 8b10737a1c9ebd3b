"""Worker for the ERP injection pipeline.

Connects to Temporal, listens on the injection task queue and executes the
injection workflow and its MKG activities.

Run with --queue <name> to poll a different queue than TEMPORAL_TASK_QUEUE.
Run with --json-logs for JSON log lines.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporal_client import get_temporal_client, get_task_queue
from workflows.injection_workflow import InjectionRunWorkflow
from activities.inject import inject_batch, check_erp_connection
from core.observability.logging import configure_logging, get_logger

logger = get_logger(__name__)

WORKFLOWS = [InjectionRunWorkflow]

ACTIVITIES = [
    inject_batch,
    check_erp_connection,
]


async def run_worker(task_queue: str, max_concurrent_activities: int = 4):
    """Start a worker on the given task queue.

    Args:
        task_queue: Queue to poll
        max_concurrent_activities: Upper bound on parallel injection runs

    Raises:
        Exception: If connection to Temporal fails
    """
    client = await get_temporal_client()
    logger.info(f"Connected to Temporal namespace: {client.namespace}")

    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=WORKFLOWS,
        activities=ACTIVITIES,
        max_concurrent_activities=max_concurrent_activities,
    )
    logger.info(
        f"Worker created for queue '{task_queue}'",
        extra_fields={"workflows": len(WORKFLOWS), "activities": len(ACTIVITIES)},
    )

    try:
        logger.info("Worker running... (Ctrl+C to stop)")
        await worker.run()
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        raise


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="ERP Injection Temporal Worker")
    parser.add_argument(
        "--queue", "-q",
        default=get_task_queue(),
        help="Task queue to poll (default: TEMPORAL_TASK_QUEUE or erp-injection)"
    )
    parser.add_argument(
        "--max-activities",
        type=int,
        default=4,
        help="Maximum concurrent activities"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines"
    )

    args = parser.parse_args()
    configure_logging(json_format=args.json_logs)
    try:
        asyncio.run(run_worker(task_queue=args.queue, max_concurrent_activities=args.max_activities))
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")


if __name__ == "__main__":
    main()
