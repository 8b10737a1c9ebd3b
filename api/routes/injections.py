"""Injection run endpoints.

Starts, inspects and cancels InjectionRunWorkflow executions.
"""

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from temporalio.client import Client, WorkflowExecutionStatus
from temporalio.service import RPCError, RPCStatusCode

from core.observability.logging import get_logger
from injection_engine.models import OrderLine, QuoteLine, RevisionLine
from temporal_client import get_task_queue, get_temporal_client
from workflows.injection_workflow import InjectionRunInput, InjectionRunWorkflow

logger = get_logger(__name__)

router = APIRouter()

_client: Optional[Client] = None


async def get_temporal() -> Client:
    """Shared Temporal client, connected on first use."""
    global _client
    if _client is None:
        try:
            _client = await get_temporal_client()
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e))
    return _client


class InjectionRequest(BaseModel):
    """Batch of extracted lines to inject."""
    run_id: Optional[str] = Field(None, description="Caller-chosen run id; generated if omitted")
    orders: List[OrderLine] = Field(default_factory=list)
    quotes: List[QuoteLine] = Field(default_factory=list)
    revisions: List[RevisionLine] = Field(default_factory=list)
    max_concurrent_groups: int = Field(1, ge=1, le=16)


class InjectionStartedResponse(BaseModel):
    """Response after starting a run."""
    workflow_id: str
    run_id: str
    status: str
    line_counts: Dict[str, int]


class InjectionStatusResponse(BaseModel):
    """Workflow status plus the progress query result."""
    workflow_id: str
    status: str
    progress: Dict[str, Any] = {}
    result: Optional[Dict[str, Any]] = None


def workflow_id_for(run_id: str) -> str:
    return f"injection-{run_id}"


def _dump(lines: List[BaseModel]) -> List[Dict[str, Any]]:
    return [line.model_dump(mode="json") for line in lines]


@router.post("", response_model=InjectionStartedResponse, status_code=202)
async def start_injection(
    request: InjectionRequest,
    client: Client = Depends(get_temporal),
) -> InjectionStartedResponse:
    """Start an injection run for the given lines."""
    line_counts = {
        "orders": len(request.orders),
        "quotes": len(request.quotes),
        "revisions": len(request.revisions),
    }
    if not any(line_counts.values()):
        raise HTTPException(status_code=400, detail="No lines to inject")

    run_id = request.run_id or uuid.uuid4().hex
    workflow_id = workflow_id_for(run_id)

    handle = await client.start_workflow(
        InjectionRunWorkflow.run,
        InjectionRunInput(
            run_id=run_id,
            orders=_dump(request.orders),
            quotes=_dump(request.quotes),
            revisions=_dump(request.revisions),
            max_concurrent_groups=request.max_concurrent_groups,
        ),
        id=workflow_id,
        task_queue=get_task_queue(),
    )
    logger.info(f"Started injection workflow {handle.id}", extra_fields=line_counts)

    return InjectionStartedResponse(
        workflow_id=handle.id,
        run_id=run_id,
        status="RUNNING",
        line_counts=line_counts,
    )


@router.get("/{workflow_id}", response_model=InjectionStatusResponse)
async def get_injection(
    workflow_id: str,
    client: Client = Depends(get_temporal),
) -> InjectionStatusResponse:
    """Status, progress and (once completed) the result of a run."""
    handle = client.get_workflow_handle(workflow_id)
    try:
        description = await handle.describe()
        progress = await handle.query(InjectionRunWorkflow.progress)
    except RPCError as e:
        if e.status == RPCStatusCode.NOT_FOUND:
            raise HTTPException(status_code=404, detail=f"Injection run '{workflow_id}' not found")
        raise

    status = description.status.name if description.status else "UNKNOWN"
    result = None
    if description.status == WorkflowExecutionStatus.COMPLETED:
        result = await handle.result()

    return InjectionStatusResponse(
        workflow_id=workflow_id,
        status=status,
        progress=progress or {},
        result=result,
    )


@router.post("/{workflow_id}/cancel", status_code=202)
async def cancel_injection(
    workflow_id: str,
    client: Client = Depends(get_temporal),
) -> Dict[str, str]:
    """Request cancellation; the run stops after the line in flight."""
    handle = client.get_workflow_handle(workflow_id)
    try:
        await handle.cancel()
    except RPCError as e:
        if e.status == RPCStatusCode.NOT_FOUND:
            raise HTTPException(status_code=404, detail=f"Injection run '{workflow_id}' not found")
        raise

    logger.info(f"Cancellation requested for {workflow_id}")
    return {"workflow_id": workflow_id, "status": "CANCEL_REQUESTED"}
