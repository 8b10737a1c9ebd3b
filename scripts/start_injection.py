"""Start an injection run on Temporal.

This script connects to Temporal, starts an InjectionRunWorkflow for a JSON
batch file and, unless --no-wait is given, prints the result.
"""

import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporal_client import get_temporal_client, get_task_queue
from workflows.injection_workflow import InjectionRunWorkflow, InjectionRunInput


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def start_injection_workflow(batch_path: Path, wait: bool = True, max_concurrent_groups: int = 1):
    """Start the workflow for a batch file.

    Args:
        batch_path: JSON file with "orders", "quotes" and/or "revisions"
        wait: Wait for and return the workflow result
        max_concurrent_groups: Groups processed concurrently per kind

    Returns:
        dict: Workflow result, or the workflow id when not waiting
    """
    batch = json.loads(batch_path.read_text(encoding="utf-8"))
    run_id = uuid.uuid4().hex[:12]

    client = await get_temporal_client()
    logger.info(f"Connected to Temporal: {client.namespace}")

    task_queue = get_task_queue()
    logger.info(f"Starting InjectionRunWorkflow on task queue '{task_queue}'...")
    handle = await client.start_workflow(
        InjectionRunWorkflow.run,
        InjectionRunInput(
            run_id=run_id,
            orders=batch.get("orders", []),
            quotes=batch.get("quotes", []),
            revisions=batch.get("revisions", []),
            max_concurrent_groups=max_concurrent_groups,
        ),
        task_queue=task_queue,
        id=f"injection-{run_id}",
    )
    logger.info(f"Workflow started: {handle.id}")

    if not wait:
        return {"workflow_id": handle.id}

    result = await handle.result()
    logger.info("Workflow completed")
    return result


def main():
    """Entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Start an injection run on Temporal")
    parser.add_argument("batch", type=Path, help="JSON batch file")
    parser.add_argument("--no-wait", action="store_true", help="Return after starting the workflow")
    parser.add_argument("--max-concurrent-groups", type=int, default=1)
    args = parser.parse_args()

    try:
        result = asyncio.run(start_injection_workflow(
            args.batch,
            wait=not args.no_wait,
            max_concurrent_groups=args.max_concurrent_groups,
        ))
        print("\n=== WORKFLOW RESULT ===")
        print(json.dumps(result, indent=2, ensure_ascii=False))
        print("=======================\n")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
