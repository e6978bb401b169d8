"""
Rebate task endpoints: task list, details, recovery entry, filters and paging.
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, Request
import time
from rebate_service.api.deps import get_controller
from rebate_service.models.schemas.base import ResponseBase
from rebate_service.models.schemas.rebates import (
    DashboardRead,
    FilterUpdate,
    ItemsPerPageUpdate,
    PageUpdate,
    RebateTask,
    RebateTaskRead,
    SaveRecoveryRequest,
    SessionRead,
    TaskPage,
)
from rebate_service.services.commands import (
    DeleteRecovery,
    QuickFullRecovery,
    Reload,
    ResetFilters,
    SaveRecovery,
    SetFilter,
    SetItemsPerPage,
    SetPage,
)
from rebate_service.services.controller import RebateController, task_state
from rebate_service.services.task_filters import PageResult
from rebate_service.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

def serialize_task(task: RebateTask) -> Dict[str, Any]:
    return RebateTaskRead(**task.model_dump(), recovery_state=task_state(task)).model_dump(mode="json")

def serialize_page(result: PageResult) -> Dict[str, Any]:
    return TaskPage(
        tasks=[RebateTaskRead(**t.model_dump(), recovery_state=task_state(t)) for t in result.tasks],
        page=result.page,
        total_pages=result.total_pages,
        total_count=result.total_count,
    ).model_dump(mode="json")

@router.get(
    "/tasks",
    response_model=ResponseBase,
    summary="Current page of filtered rebate tasks"
)
async def list_tasks(
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """Return the session's current page; the page number is clamped to the valid range."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    result = await controller.get_filtered_page()

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="list_rebate_tasks",
        duration_ms=duration_ms,
        additional_data={"returned": len(result.tasks), "total_count": result.total_count}
    )
    logger.info(
        "Rebate task page served",
        client_id=controller.client_id,
        page=result.page,
        total_count=result.total_count,
        request_id=request_id
    )
    return ResponseBase(message="Rebate tasks retrieved", data=serialize_page(result))

@router.get(
    "/tasks/{task_id}",
    response_model=ResponseBase,
    summary="Task details refreshed from upstream"
)
async def get_task(
    task_id: str,
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    task = await controller.get_task_detail(task_id)
    logger.info("Rebate task details served", task_id=task_id, request_id=request_id)
    return ResponseBase(message="Rebate task retrieved", data=serialize_task(task))

@router.get(
    "/dashboard",
    response_model=ResponseBase,
    summary="Totals over the filtered task set"
)
async def get_dashboard(
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    summary = await controller.get_dashboard()
    return ResponseBase(
        message="Dashboard computed",
        data=DashboardRead(**summary.as_dict()).model_dump()
    )

@router.get(
    "/projects",
    response_model=ResponseBase,
    summary="Project filter options"
)
async def list_projects(
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    projects = await controller.project_options()
    return ResponseBase(
        message="Projects retrieved",
        data={"projects": [p.model_dump() for p in projects]}
    )

@router.get(
    "/session",
    response_model=ResponseBase,
    summary="Filter, paging and batch state of this client's session"
)
async def get_session(
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    snapshot = SessionRead(**controller.get_session_snapshot())
    return ResponseBase(message="Session state", data=snapshot.model_dump(mode="json"))

@router.post(
    "/reload",
    response_model=ResponseBase,
    summary="Reload every collaboration from upstream"
)
async def reload_tasks(
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """Full reload; active filters are kept."""
    request_id = request.headers.get("X-Request-ID", "unknown")
    logger.info("Rebate reload requested", client_id=controller.client_id, request_id=request_id)
    result = await controller.dispatch(Reload())
    return ResponseBase(message="Rebate tasks reloaded", data=serialize_page(result))

# ------------------------------ Filters & paging ------------------------------ #

@router.put(
    "/filter",
    response_model=ResponseBase,
    summary="Apply filter criteria"
)
async def set_filter(
    criteria: FilterUpdate,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """Replace all three criteria and return to page 1."""
    result = await controller.dispatch(
        SetFilter(project_id=criteria.project_id, status=criteria.status, talent_name=criteria.talent_name)
    )
    return ResponseBase(message="Filters applied", data=serialize_page(result))

@router.post(
    "/filter/reset",
    response_model=ResponseBase,
    summary="Clear all filter criteria"
)
async def reset_filters(
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    result = await controller.dispatch(ResetFilters())
    return ResponseBase(message="Filters reset", data=serialize_page(result))

@router.put(
    "/page",
    response_model=ResponseBase,
    summary="Move to a page"
)
async def set_page(
    update: PageUpdate,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    result = await controller.dispatch(SetPage(page=update.page))
    return ResponseBase(message=f"Page {result.page} of {result.total_pages}", data=serialize_page(result))

@router.put(
    "/items-per-page",
    response_model=ResponseBase,
    summary="Change and persist the page size"
)
async def set_items_per_page(
    update: ItemsPerPageUpdate,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    result = await controller.dispatch(SetItemsPerPage(items_per_page=update.items_per_page))
    return ResponseBase(
        message="Items per page updated",
        data={"items_per_page": controller.session.items_per_page, **serialize_page(result)}
    )

# ---------------------------------- Recovery ---------------------------------- #

@router.put(
    "/tasks/{task_id}/recovery",
    response_model=ResponseBase,
    summary="Save a recovery entry"
)
async def save_recovery(
    task_id: str,
    entry: SaveRecoveryRequest,
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """
    Record the recovered amount and date. A discrepancy beyond tolerance needs
    a reason and at least one evidence screenshot; nothing is written otherwise.
    """
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Recovery save requested",
        task_id=task_id,
        client_id=controller.client_id,
        request_id=request_id
    )
    task = await controller.dispatch(
        SaveRecovery(
            task_id=task_id,
            amount=entry.amount,
            recovery_date=entry.recovery_date,
            reason=entry.reason,
        )
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(operation="save_recovery", duration_ms=duration_ms, additional_data={"task_id": task_id})
    return ResponseBase(
        message="Recovery saved",
        data={"task": serialize_task(task) if task else None, "stale": controller.session.stale}
    )

@router.delete(
    "/tasks/{task_id}/recovery",
    response_model=ResponseBase,
    summary="Delete a recovery record and its evidence"
)
async def delete_recovery(
    task_id: str,
    request: Request,
    confirmed: bool = Query(False, description="Must be true; the record and evidence are removed"),
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    deleted = await controller.dispatch(DeleteRecovery(task_id=task_id, confirmed=confirmed))
    logger.info("Recovery delete handled", task_id=task_id, deleted=deleted, request_id=request_id)
    return ResponseBase(
        message="Recovery deleted" if deleted else "Nothing to delete: task has no recovery",
        data={"task_id": task_id, "deleted": deleted}
    )

@router.post(
    "/tasks/{task_id}/quick-recovery",
    response_model=ResponseBase,
    summary="Fully recover one pending task"
)
async def quick_recovery(
    task_id: str,
    request: Request,
    controller: RebateController = Depends(get_controller)
) -> ResponseBase:
    """Set the recovered amount to the receivable with today's date."""
    request_id = request.headers.get("X-Request-ID", "unknown")
    task: Optional[RebateTask] = await controller.dispatch(QuickFullRecovery(task_id=task_id))
    logger.info("Quick recovery completed", task_id=task_id, request_id=request_id)
    amount = task.receivable if task else None
    return ResponseBase(
        message=f"Recovered {amount:.2f}" if amount is not None else "Recovered",
        data={"task": serialize_task(task) if task else None, "stale": controller.session.stale}
    )

