"""
Batch mode endpoints: mode switch, selection, preview and bulk full recovery.
"""
from fastapi import APIRouter, Depends, Request
import time
from rebate_service.api.deps import get_controller
from rebate_service.models.schemas.base import ResponseBase
from rebate_service.models.schemas.rebates import (
    BatchPreviewRead,
    BatchRecoveryRead,
    ConfirmedAction,
    SelectionToggle,
)
from rebate_service.services.commands import (
    BatchFullRecovery,
    ClearSelection,
    EnterBatchMode,
    ExitBatchMode,
    SelectAllEligible,
    ToggleSelection,
)
from rebate_service.services.controller import RebateController
from rebate_service.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

def _selection_payload(controller: RebateController) -> dict:
    return {
        "batch_mode": controller.session.batch_mode.value,
        "selected_task_ids": sorted(controller.session.selected_ids),
    }

@router.post("/enter", response_model=ResponseBase, summary="Enter batch mode")
async def enter_batch_mode(controller: RebateController = Depends(get_controller)) -> ResponseBase:
    await controller.dispatch(EnterBatchMode())
    return ResponseBase(message="Batch mode on", data=_selection_payload(controller))

@router.post("/exit", response_model=ResponseBase, summary="Exit batch mode")
async def exit_batch_mode(controller: RebateController = Depends(get_controller)) -> ResponseBase:
    """Leave batch mode. The selection is kept."""
    await controller.dispatch(ExitBatchMode())
    return ResponseBase(message="Batch mode off", data=_selection_payload(controller))

@router.post("/selection/toggle", response_model=ResponseBase, summary="Select or deselect one task")
async def toggle_selection(
    toggle: SelectionToggle,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    selected = await controller.dispatch(ToggleSelection(task_id=toggle.task_id))
    return ResponseBase(
        message="Task selected" if selected else "Task deselected",
        data={"task_id": toggle.task_id, "selected": selected, **_selection_payload(controller)}
    )

@router.post("/selection/select-all", response_model=ResponseBase, summary="Select pending tasks on the current page")
async def select_all_eligible(controller: RebateController = Depends(get_controller)) -> ResponseBase:
    ids = await controller.dispatch(SelectAllEligible())
    return ResponseBase(message=f"Selected {len(ids)} task(s)", data=_selection_payload(controller))

@router.post("/selection/clear", response_model=ResponseBase, summary="Clear the selection")
async def clear_selection(controller: RebateController = Depends(get_controller)) -> ResponseBase:
    await controller.dispatch(ClearSelection())
    return ResponseBase(message="Selection cleared", data=_selection_payload(controller))

@router.get("/preview", response_model=ResponseBase, summary="What a batch full recovery would do")
async def batch_preview(controller: RebateController = Depends(get_controller)) -> ResponseBase:
    preview = await controller.batch_preview()
    return ResponseBase(
        message=f"{preview.eligible_count} task(s) eligible",
        data=BatchPreviewRead(
            eligible_count=preview.eligible_count,
            total_amount=preview.total_amount,
            recovery_date=preview.recovery_date,
        ).model_dump()
    )

@router.post("/full-recovery", response_model=ResponseBase, summary="Fully recover every selected pending task")
async def batch_full_recovery(
    action: ConfirmedAction,
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """
    Set each selected pending task's recovered amount to its receivable with
    today's date. Individual failures are counted; the batch never aborts.
    Requires ``confirmed`` unless there is nothing to recover.
    """
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Batch full recovery requested",
        client_id=controller.client_id,
        selected=len(controller.session.selected_ids),
        request_id=request_id
    )
    outcome = await controller.dispatch(BatchFullRecovery(confirmed=action.confirmed))

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="batch_full_recovery_request",
        duration_ms=duration_ms,
        additional_data={"success": outcome.success_count, "failed": outcome.failed_count}
    )
    return ResponseBase(
        success=not outcome.failed_count,
        message=outcome.message,
        data=BatchRecoveryRead(
            success_count=outcome.success_count,
            failed_count=outcome.failed_count,
            nothing_to_recover=outcome.nothing_to_recover,
            message=outcome.message,
        ).model_dump()
    )
