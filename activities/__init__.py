"""Activity definitions module."""

from activities.inject import (
    inject_batch,
    check_erp_connection,
    InjectBatchInput,
    HeartbeatProgressSink,
)

__all__ = [
    "inject_batch",
    "check_erp_connection",
    "InjectBatchInput",
    "HeartbeatProgressSink",
]
