"""
Batch audit submission and status endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.schemas.audit import (
    AuditAcceptedResponse,
    AuditSessionStatusResponse,
    AuditSubmitRequest,
    RuntimeUnavailableResponse,
)
from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    AuditRequestValidationError,
    FastAPIBackgroundTaskExecutor,
    get_audit_orchestrator_service,
)
from audit_engine.errors import AutomationRuntimeUnavailableError

router = APIRouter(tags=["audit"])


@router.post(
    "/audit",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AuditAcceptedResponse,
    responses={status.HTTP_501_NOT_IMPLEMENTED: {"model": RuntimeUnavailableResponse}},
)
def submit_audit(
    payload: AuditSubmitRequest,
    background_tasks: BackgroundTasks,
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditAcceptedResponse | JSONResponse:
    config = payload.config
    try:
        submission = orchestrator.submit(
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            urls=payload.urls,
            form_factor=config.form_factor if config else None,
            summarizer_api_key=config.summarizer_api_key if config else None,
            bypass_token=config.bypass_token if config else None,
        )
    except AuditRequestValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AutomationRuntimeUnavailableError as exc:
        return JSONResponse(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            content=exc.to_dict(),
        )

    return AuditAcceptedResponse(session_id=submission.session_id, total=submission.total)


@router.get("/audit/{session_id}", response_model=AuditSessionStatusResponse)
def get_audit_status(
    session_id: str,
    orchestrator: AuditOrchestratorService = Depends(get_audit_orchestrator_service),
) -> AuditSessionStatusResponse:
    session = orchestrator.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Audit session not found: {session_id}",
        )
    return AuditSessionStatusResponse.from_session(session)
