"""Inject a JSON batch file into MKG directly (no Temporal).

The batch file holds extracted lines per kind:

    {
      "orders":    [{"article_code": "ART-100", "po_number": "PO-1001", "quantity": "2", ...}],
      "quotes":    [{"article_code": "ART-200", "rfq_number": "RFQ-5", ...}],
      "revisions": [{"article_code": "ART-300", "current_revision": "01", "new_revision": "02", ...}]
    }

Usage:
    python scripts/run_injection.py batch.json
    python scripts/run_injection.py batch.json --kind order --json-logs
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pydantic import ValidationError

from connectors.mkg import MkgApiClient, MkgApiError, MkgConfig, MkgConfigError
from core.observability.logging import configure_logging, get_logger
from injection_engine import (
    CancellationToken,
    EntityKind,
    InjectionPipeline,
    InjectionSettings,
    LoggingProgressSink,
)

logger = get_logger(__name__)


async def run_injection(batch: dict, kinds=None, max_concurrent_groups: int = None) -> dict:
    """Run one batch and return the run as a dict.

    Ctrl+C stops the run after the line in flight; the partial result is
    still returned.
    """
    settings = InjectionSettings.from_env()
    if max_concurrent_groups:
        settings.max_concurrent_groups = max_concurrent_groups

    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except NotImplementedError:
        pass  # Windows event loops

    async with MkgApiClient(MkgConfig.from_env()) as client:
        pipeline = InjectionPipeline(client, progress=LoggingProgressSink(), settings=settings)
        run = await pipeline.run_batch(batch, kinds=kinds, cancel_token=token)
        logger.info(f"MKG requests made: {client.request_count}")
    return run.to_dict()


def print_summary(result: dict) -> None:
    print("\n=== INJECTION RESULT ===")
    print(f"  run_id: {result['run_id']}")
    print(f"  cancelled: {result['cancelled']}")
    for kind, summary in result["summaries"].items():
        print(
            f"  {kind}: {summary['total_groups']} group(s), "
            f"{summary['successful_injections']} ok, {summary['failed_injections']} failed, "
            f"{summary['duplicates_filtered']} duplicate(s), {summary['rejected_lines']} rejected"
        )
        for error in summary["errors"]:
            print(f"    ! {error}")
    print("========================\n")


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description="Inject extracted lines into MKG")
    parser.add_argument("batch", type=Path, help="JSON batch file")
    parser.add_argument(
        "--kind", "-k",
        action="append",
        choices=[kind.value for kind in EntityKind],
        help="Only inject this kind (repeatable; default: all)"
    )
    parser.add_argument(
        "--max-concurrent-groups",
        type=int,
        default=None,
        help="Groups processed concurrently (default: INJECTION_MAX_CONCURRENT_GROUPS or 1)"
    )
    parser.add_argument("--output", "-o", type=Path, help="Write the full result JSON here")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    args = parser.parse_args()

    configure_logging(json_format=args.json_logs)

    try:
        batch = json.loads(args.batch.read_text(encoding="utf-8"))
        result = asyncio.run(run_injection(batch, kinds=args.kind, max_concurrent_groups=args.max_concurrent_groups))
    except ValidationError as e:
        print(f"Invalid line in batch: {e}", file=sys.stderr)
        return 1
    except MkgConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except MkgApiError as e:
        print(f"MKG error: {e}", file=sys.stderr)
        return 3
    except (OSError, ValueError) as e:
        print(f"Error reading batch: {e}", file=sys.stderr)
        return 1

    if args.output:
        args.output.write_text(json.dumps(result, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Result written to {args.output}")
    print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
