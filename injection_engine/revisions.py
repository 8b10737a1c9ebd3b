"""BOM revision injection.

A revision group is one article moving from one revision to the next. The
"header" is the new BOM, created by MKG's s_create_revision service as a
copy of the source BOM. Revision lines describe the field changes; they are
recorded against the new BOM without further ERP calls because the service
already copied the structure.
"""

from typing import Any, Dict

from connectors.mkg.mkg_client import MkgApiError
from connectors.mkg.mkg_models import (
    PartListRevisionRow,
    build_request,
    document_path,
    error_message_from_body,
    has_error_messages,
)
from customer_resolver import CustomerInfo
from injection_engine.duplicates import LineGroup, RevisionDuplicateDetector, bom_key
from injection_engine.injector import HeaderLineInjector, dump_payload
from injection_engine.models import (
    EntityKind,
    FailureCode,
    HeaderResult,
    LineResult,
    LineStatus,
    RevisionLine,
)
from injection_engine.units import is_unit_field, normalize_unit

CREATE_REVISION_SERVICE = "Service/s_create_revision"
REJECTED_STATUS = "422"


def source_not_found_message(source_bom_id: str) -> str:
    return (
        f"Source BOM {source_bom_id} not found in MKG system. "
        "Cannot create revision without existing source."
    )


def create_revision_endpoint(administration_number: str, source_bom_id: str) -> str:
    """Documents/stlh/<admi>+<source>/Service/s_create_revision"""
    return f"{document_path('stlh', bom_key(administration_number, source_bom_id))}/{CREATE_REVISION_SERVICE}"


class RevisionInjector(HeaderLineInjector):
    """Creates one new BOM revision per article/revision pair."""

    entity_kind = EntityKind.REVISION
    label = "revision"

    def default_detector(self) -> RevisionDuplicateDetector:
        return RevisionDuplicateDetector(self.client, self.client.config.administration_number)

    def build_revision(self, group: LineGroup) -> PartListRevisionRow:
        first: RevisionLine = group.first
        return PartListRevisionRow(
            t_stlh_num=first.source_bom_id,
            t_stlh_new=first.target_bom_id,
            t_oms=first.description or f"Revision {first.new_revision} of {first.article_code}",
        )

    async def create_header(self, group: LineGroup, customer: CustomerInfo) -> HeaderResult:
        first: RevisionLine = group.first
        source = first.source_bom_id
        admi = customer.administration_number

        if isinstance(self.detector, RevisionDuplicateDetector):
            if not await self.detector.source_exists(group, admi):
                return HeaderResult(
                    success=False,
                    source_not_found=True,
                    status_code=FailureCode.BOM_NOT_FOUND.value,
                    error_message=source_not_found_message(source),
                )

        payload = build_request("PartListRevision", [self.build_revision(group)])
        request_text = dump_payload(payload)
        try:
            body = await self.client.put(create_revision_endpoint(admi, source), payload)
        except MkgApiError as e:
            return HeaderResult(
                success=False,
                error_message=str(e),
                status_code=str(e.status_code) if e.status_code else None,
                request_payload=request_text,
                response_payload=e.response_body or None,
            )

        response_text = dump_payload(body)
        if has_error_messages(body):
            return HeaderResult(
                success=False,
                error_message=error_message_from_body(body),
                status_code=REJECTED_STATUS,
                request_payload=request_text,
                response_payload=response_text,
            )

        return HeaderResult(
            success=True,
            header_id=first.target_bom_id,
            request_payload=request_text,
            response_payload=response_text,
        )

    def line_details(self, line: RevisionLine) -> Dict[str, Any]:
        old_value, new_value = line.old_value, line.new_value
        if is_unit_field(line.field_changed):
            old_value = normalize_unit(old_value) if old_value else old_value
            new_value = normalize_unit(new_value) if new_value else new_value
        return {
            "field_changed": line.field_changed,
            "old_value": old_value,
            "new_value": new_value,
        }

    async def inject_line(
        self, line: RevisionLine, group: LineGroup, header: HeaderResult, customer: CustomerInfo
    ) -> LineResult:
        return self._result(line, group, LineStatus.SUCCESS, header_id=header.header_id)
