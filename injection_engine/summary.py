"""Run summary aggregation.

InjectionSummary is mutated while a run progresses and frozen into a
SummarySnapshot when the run ends. Counters are in line terms except the
*_groups counters.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from injection_engine.models import EntityKind, LineResult, LineStatus


class GroupReport(BaseModel):
    """Per-header breakdown of a run."""
    group_key: str
    header_id: Optional[str] = None
    line_count: int = 0
    success_count: int = 0
    duplicate_count: int = 0
    failure_count: int = 0


class SummarySnapshot(BaseModel):
    """Immutable view of a finished (or cancelled) run for one entity kind."""
    model_config = ConfigDict(frozen=True)

    entity_kind: EntityKind
    start_time: datetime
    end_time: Optional[datetime] = None
    processing_time_seconds: float = 0.0
    total_groups: int = 0
    successful_injections: int = 0
    failed_injections: int = 0
    duplicates_filtered: int = 0
    rejected_lines: int = 0
    successful_groups: int = 0
    failed_groups: int = 0
    effective_success_rate: float = 0.0
    cancelled: bool = False
    line_results: Tuple[LineResult, ...] = Field(default_factory=tuple)
    groups: Tuple[GroupReport, ...] = Field(default_factory=tuple)
    errors: Tuple[str, ...] = Field(default_factory=tuple)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class InjectionSummary:
    """
    Additive aggregator for one entity kind of one run.

    Results may be recorded out of order when groups run concurrently;
    line_results is always ordered by group position, then arrival.
    """

    def __init__(self, entity_kind: EntityKind, clock: Callable[[], datetime] = datetime.now):
        self.entity_kind = EntityKind(entity_kind)
        self._clock = clock
        self.start_time: datetime = clock()
        self.end_time: Optional[datetime] = None

        self.total_groups = 0
        self.successful_injections = 0
        self.failed_injections = 0
        self.duplicates_filtered = 0
        self.rejected_lines = 0
        self.successful_groups = 0
        self.failed_groups = 0
        self.cancelled = False
        self.errors: List[str] = []

        self._results: List[Tuple[int, int, LineResult]] = []
        self._header_ids: Dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record(self, result: LineResult, group_index: int = 0) -> None:
        self._results.append((group_index, len(self._results), result))
        if result.status == LineStatus.SUCCESS:
            self.successful_injections += 1
        elif result.status == LineStatus.DUPLICATE_SKIPPED:
            self.duplicates_filtered += 1
        else:
            self.failed_injections += 1
        if result.header_id:
            self._header_ids.setdefault(result.group_key, result.header_id)

    def reject(self, count: int = 1) -> None:
        """Count lines dropped before grouping (structural or rule failures)."""
        self.rejected_lines += count

    def group_completed(self, success: bool) -> None:
        if success:
            self.successful_groups += 1
        else:
            self.failed_groups += 1

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @property
    def line_results(self) -> List[LineResult]:
        return [result for _, _, result in sorted(self._results, key=lambda item: (item[0], item[1]))]

    @property
    def processing_time_seconds(self) -> float:
        end = self.end_time or self._clock()
        return max((end - self.start_time).total_seconds(), 0.0)

    @property
    def effective_success_rate(self) -> float:
        """Share of results that were injected or already present, in percent."""
        total = len(self._results)
        if total == 0:
            return 0.0
        return round((self.successful_injections + self.duplicates_filtered) * 100.0 / total, 2)

    def group_reports(self) -> List[GroupReport]:
        reports: Dict[str, GroupReport] = {}
        for result in self.line_results:
            report = reports.get(result.group_key)
            if report is None:
                report = GroupReport(
                    group_key=result.group_key,
                    header_id=self._header_ids.get(result.group_key),
                )
                reports[result.group_key] = report
            report.line_count += 1
            if result.status == LineStatus.SUCCESS:
                report.success_count += 1
            elif result.status == LineStatus.DUPLICATE_SKIPPED:
                report.duplicate_count += 1
            else:
                report.failure_count += 1
        return list(reports.values())

    def finish(self) -> SummarySnapshot:
        """Stamp the end time (once) and return the frozen snapshot."""
        if self.end_time is None:
            self.end_time = self._clock()
        return self.snapshot()

    def snapshot(self) -> SummarySnapshot:
        return SummarySnapshot(
            entity_kind=self.entity_kind,
            start_time=self.start_time,
            end_time=self.end_time,
            processing_time_seconds=self.processing_time_seconds,
            total_groups=self.total_groups,
            successful_injections=self.successful_injections,
            failed_injections=self.failed_injections,
            duplicates_filtered=self.duplicates_filtered,
            rejected_lines=self.rejected_lines,
            successful_groups=self.successful_groups,
            failed_groups=self.failed_groups,
            effective_success_rate=self.effective_success_rate,
            cancelled=self.cancelled,
            line_results=tuple(self.line_results),
            groups=tuple(self.group_reports()),
            errors=tuple(self.errors),
        )

    def to_dict(self) -> dict:
        return self.snapshot().to_dict()
