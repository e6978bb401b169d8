"""
Proof-of-payment evidence endpoints.
"""
from typing import List
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from rebate_service.api.deps import get_controller
from rebate_service.integrations.base import EvidenceFile
from rebate_service.models.schemas.base import ResponseBase
from rebate_service.services.commands import AddEvidence, RemoveEvidence
from rebate_service.services.controller import RebateController
from rebate_service.utils import get_logger

router = APIRouter()
logger = get_logger(__name__)

@router.post(
    "/{task_id}/evidence",
    response_model=ResponseBase,
    summary="Upload evidence screenshots"
)
async def add_evidence(
    task_id: str,
    request: Request,
    files: List[UploadFile] = File(..., description="Screenshots, appended in the order given"),
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    evidence = [
        EvidenceFile(
            filename=f.filename or f"evidence-{i + 1}",
            content=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for i, f in enumerate(files)
    ]
    logger.info(
        "Evidence upload requested",
        task_id=task_id,
        file_count=len(evidence),
        request_id=request_id
    )
    urls = await controller.dispatch(AddEvidence(task_id=task_id, files=evidence))
    return ResponseBase(
        message=f"Uploaded {len(evidence)} file(s)",
        data={"task_id": task_id, "evidence_urls": urls}
    )

@router.delete(
    "/{task_id}/evidence/{index}",
    response_model=ResponseBase,
    summary="Remove one evidence screenshot"
)
async def remove_evidence(
    task_id: str,
    index: int,
    request: Request,
    confirmed: bool = Query(False, description="Must be true; the screenshot is deleted"),
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    urls = await controller.dispatch(RemoveEvidence(task_id=task_id, index=index, confirmed=confirmed))
    logger.info("Evidence removed", task_id=task_id, index=index, request_id=request_id)
    return ResponseBase(
        message="Evidence removed",
        data={"task_id": task_id, "evidence_urls": urls}
    )
