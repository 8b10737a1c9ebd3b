"""
Run summary tests.
"""

from datetime import datetime, timedelta


class StepClock:
    """Returns start, then start + 1s, + 2s, ... on each call."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


def result(status, group_key="PO-1", article="ART-1", header_id=None):
    from injection_engine.models import EntityKind, LineResult, LineStatus
    return LineResult(
        entity_kind=EntityKind.ORDER,
        article_code=article,
        group_key=group_key,
        success=status == LineStatus.SUCCESS,
        status=status,
        header_id=header_id,
    )


class TestInjectionSummary:

    def test_counters_sum_to_results(self):
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.ORDER)
        summary.record(result(LineStatus.SUCCESS))
        summary.record(result(LineStatus.DUPLICATE_SKIPPED))
        summary.record(result(LineStatus.BUSINESS_RULE_VIOLATION))
        summary.record(result(LineStatus.TECHNICAL_FAILURE))
        summary.record(result(LineStatus.SOURCE_NOT_FOUND))
        summary.reject(2)

        assert summary.successful_injections == 1
        assert summary.duplicates_filtered == 1
        assert summary.failed_injections == 3
        assert summary.rejected_lines == 2
        total = summary.successful_injections + summary.duplicates_filtered + summary.failed_injections
        assert total == len(summary.line_results) == 5
        assert summary.effective_success_rate == 40.0

    def test_rate_rounded(self):
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.ORDER)
        summary.record(result(LineStatus.SUCCESS))
        summary.record(result(LineStatus.TECHNICAL_FAILURE))
        summary.record(result(LineStatus.TECHNICAL_FAILURE))
        assert summary.effective_success_rate == 33.33

    def test_results_ordered_by_group_position(self):
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.ORDER)
        summary.record(result(LineStatus.SUCCESS, "PO-2", "B-1"), group_index=1)
        summary.record(result(LineStatus.SUCCESS, "PO-1", "A-1"), group_index=0)
        summary.record(result(LineStatus.SUCCESS, "PO-2", "B-2"), group_index=1)
        summary.record(result(LineStatus.SUCCESS, "PO-1", "A-2"), group_index=0)

        assert [r.article_code for r in summary.line_results] == ["A-1", "A-2", "B-1", "B-2"]
        assert [g.group_key for g in summary.group_reports()] == ["PO-1", "PO-2"]

    def test_group_reports(self):
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.ORDER)
        summary.record(result(LineStatus.SUCCESS, header_id="20250001"))
        summary.record(result(LineStatus.BUSINESS_RULE_VIOLATION, header_id="20250001"))
        summary.record(result(LineStatus.DUPLICATE_SKIPPED, "PO-2", header_id="20240009"))

        first, second = summary.group_reports()
        assert (first.header_id, first.line_count, first.success_count, first.failure_count) == ("20250001", 2, 1, 1)
        assert (second.header_id, second.duplicate_count) == ("20240009", 1)

    def test_finish_stamps_end_time_once(self):
        from injection_engine.models import EntityKind
        from injection_engine.summary import InjectionSummary

        clock = StepClock(datetime(2025, 6, 2, 9, 0, 0))
        summary = InjectionSummary(EntityKind.QUOTE, clock=clock)

        first = summary.finish()
        second = summary.finish()

        assert first.end_time == second.end_time == datetime(2025, 6, 2, 9, 0, 1)
        assert first.processing_time_seconds == 1.0

    def test_snapshot_is_frozen_copy(self):
        import pytest
        from pydantic import ValidationError
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.ORDER)
        summary.record(result(LineStatus.SUCCESS))
        snapshot = summary.snapshot()
        summary.record(result(LineStatus.SUCCESS))

        assert snapshot.successful_injections == 1
        assert len(snapshot.line_results) == 1
        with pytest.raises(ValidationError):
            snapshot.successful_injections = 5

    def test_to_dict_is_json_ready(self):
        import json
        from injection_engine.models import EntityKind, LineStatus
        from injection_engine.summary import InjectionSummary

        summary = InjectionSummary(EntityKind.REVISION)
        summary.record(result(LineStatus.SOURCE_NOT_FOUND))
        summary.add_error("Revision X: missing")

        data = json.loads(json.dumps(summary.finish().to_dict()))
        assert data["entity_kind"] == "revision"
        assert data["line_results"][0]["status"] == "SOURCE_NOT_FOUND"
        assert data["errors"] == ["Revision X: missing"]
        assert data["cancelled"] is False


class TestProgressSinks:

    def test_recording_sink(self):
        from injection_engine.progress import ProgressSink, RecordingProgressSink

        sink = RecordingProgressSink()
        sink.on_progress("Injecting 1 order group(s)")
        sink.on_injection_error()
        sink.on_business_error("Pre-Validation", "ART-1: Quantity must be positive")
        sink.on_duplicate(3)

        assert isinstance(sink, ProgressSink)
        assert sink.to_dict() == {
            "injection_errors": 1,
            "business_errors": 1,
            "duplicates": 3,
            "last_message": "Injecting 1 order group(s)",
        }

    def test_logging_sink(self, caplog):
        import logging
        from injection_engine.progress import LoggingProgressSink

        sink = LoggingProgressSink("injection_engine.progress.test")
        with caplog.at_level(logging.INFO, logger="injection_engine.progress.test"):
            sink.on_business_error("ERP Response", "Invalid unit")
            sink.on_duplicate(2)

        messages = [r.getMessage() for r in caplog.records]
        assert "Business error (ERP Response): Invalid unit" in messages
        assert "Skipped 2 duplicate line(s)" in messages
