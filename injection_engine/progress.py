"""Progress reporting interface.

The engine reports counters and status lines through a ProgressSink; how
they are displayed (desktop UI, Temporal heartbeat, API) is up to the caller.
"""

from dataclasses import dataclass, field
from typing import List, Protocol, Tuple, runtime_checkable

from core.observability.logging import get_logger


@runtime_checkable
class ProgressSink(Protocol):
    """Receives progress signals while a run is in flight."""

    def on_progress(self, message: str) -> None:
        """Human-readable status line."""
        ...

    def on_injection_error(self) -> None:
        """A line failed for a technical reason."""
        ...

    def on_business_error(self, source: str, detail: str) -> None:
        """A line was rejected by a business rule (pre-validation or ERP response)."""
        ...

    def on_duplicate(self, count: int) -> None:
        """`count` lines were skipped because their header already exists."""
        ...


class NullProgressSink:
    """Discards every signal."""

    def on_progress(self, message: str) -> None:
        pass

    def on_injection_error(self) -> None:
        pass

    def on_business_error(self, source: str, detail: str) -> None:
        pass

    def on_duplicate(self, count: int) -> None:
        pass


class LoggingProgressSink:
    """Writes every signal to the structured log."""

    def __init__(self, logger_name: str = "injection_engine.progress"):
        self.logger = get_logger(logger_name)

    def on_progress(self, message: str) -> None:
        self.logger.info(message)

    def on_injection_error(self) -> None:
        self.logger.warning("Injection error")

    def on_business_error(self, source: str, detail: str) -> None:
        self.logger.warning(f"Business error ({source}): {detail}")

    def on_duplicate(self, count: int) -> None:
        self.logger.info(f"Skipped {count} duplicate line(s)")


@dataclass
class RecordingProgressSink:
    """Keeps counters and messages in memory."""
    messages: List[str] = field(default_factory=list)
    injection_errors: int = 0
    business_errors: List[Tuple[str, str]] = field(default_factory=list)
    duplicates: int = 0

    def on_progress(self, message: str) -> None:
        self.messages.append(message)

    def on_injection_error(self) -> None:
        self.injection_errors += 1

    def on_business_error(self, source: str, detail: str) -> None:
        self.business_errors.append((source, detail))

    def on_duplicate(self, count: int) -> None:
        self.duplicates += count

    @property
    def business_error_count(self) -> int:
        return len(self.business_errors)

    def to_dict(self) -> dict:
        return {
            "injection_errors": self.injection_errors,
            "business_errors": self.business_error_count,
            "duplicates": self.duplicates,
            "last_message": self.messages[-1] if self.messages else None,
        }
