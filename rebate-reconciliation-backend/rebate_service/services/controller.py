"""Per-client rebate dashboard controller.

A RebateController owns one RebateSession and serialises every command and
load against it with an asyncio.Lock. Commands are typed dataclasses from
``services.commands`` routed through ``dispatch``; upstream writes are always
followed by a full reload.
"""
from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from rebate_service.config import API_SETTINGS
from rebate_service.exceptions import ConfirmationRequiredError, TaskNotFoundError
from rebate_service.integrations.base import Integrations
from rebate_service.models.schemas.collaborations import Project
from rebate_service.models.schemas.rebates import RebateTask
from rebate_service.services.batch_recovery import BatchPreview, BatchRecoveryOrchestrator, BatchRecoveryOutcome
from rebate_service.services.commands import (
    AddEvidence,
    BatchFullRecovery,
    ClearSelection,
    DeleteRecovery,
    EnterBatchMode,
    ExitBatchMode,
    QuickFullRecovery,
    Reload,
    RemoveEvidence,
    ResetFilters,
    SaveRecovery,
    SelectAllEligible,
    SetFilter,
    SetItemsPerPage,
    SetPage,
    ToggleSelection,
)
from rebate_service.services.dashboard import DashboardSummary, compute_dashboard
from rebate_service.services.evidence_manager import EvidenceManager
from rebate_service.services.preferences import PreferenceStore
from rebate_service.services.recovery_classifier import classify
from rebate_service.services.recovery_commands import RecoveryCommandProcessor, require_task
from rebate_service.services.session import RebateSession
from rebate_service.services.task_aggregator import aggregate_rebate_tasks
from rebate_service.services.task_filters import FilterCriteria, PageResult
from rebate_service.utils import get_logger, log_performance
from rebate_service.utils.time import elapsed_ms

logger = get_logger(__name__)


class RebateController:
    """Single writer for one client's dashboard session."""

    def __init__(self, client_id: str, integrations: Integrations, preferences: PreferenceStore):
        self.integrations = integrations
        self.preferences = preferences
        self.session = RebateSession(
            client_id=client_id,
            items_per_page=preferences.get_items_per_page(client_id),
        )
        self.recovery = RecoveryCommandProcessor(integrations.collaborations, integrations.blobs)
        self.batch = BatchRecoveryOrchestrator(integrations.collaborations)
        self.evidence = EvidenceManager(integrations.collaborations, integrations.blobs)
        self._lock = asyncio.Lock()
        self._handlers: Dict[type, Callable[[Any], Awaitable[Any]]] = {
            Reload: self._handle_reload,
            SetFilter: self._handle_set_filter,
            ResetFilters: self._handle_reset_filters,
            SetPage: self._handle_set_page,
            SetItemsPerPage: self._handle_set_items_per_page,
            EnterBatchMode: self._handle_enter_batch,
            ExitBatchMode: self._handle_exit_batch,
            ToggleSelection: self._handle_toggle_selection,
            SelectAllEligible: self._handle_select_all,
            ClearSelection: self._handle_clear_selection,
            SaveRecovery: self._handle_save_recovery,
            DeleteRecovery: self._handle_delete_recovery,
            BatchFullRecovery: self._handle_batch_full_recovery,
            QuickFullRecovery: self._handle_quick_full_recovery,
            AddEvidence: self._handle_add_evidence,
            RemoveEvidence: self._handle_remove_evidence,
        }

    @property
    def client_id(self) -> str:
        return self.session.client_id

    # --------------------------------- loading --------------------------------- #

    async def _load(self) -> None:
        """Fetch every collaboration and project and rebuild the task list."""
        start = time.perf_counter()
        records, projects = await asyncio.gather(
            self.integrations.collaborations.list_collaborations(),
            self.integrations.projects.list_projects(),
        )
        tasks = aggregate_rebate_tasks(records, projects)
        self.session.replace_tasks(projects, tasks)
        log_performance(
            operation="rebate_reload",
            duration_ms=elapsed_ms(start),
            additional_data={"records": len(records), "tasks": len(tasks), "client_id": self.client_id},
        )

    async def _ensure_loaded(self) -> None:
        # Writes send whole evidence arrays back, so a stale snapshot must be refreshed first
        if not self.session.loaded or self.session.stale:
            if self.session.stale:
                logger.info("Refreshing stale task list", client_id=self.client_id)
            await self._load()

    async def _reload_after_write(self) -> None:
        # The write already succeeded; a failed refresh marks the session stale
        try:
            await self._load()
        except Exception as e:
            self.session.stale = True
            logger.error(
                "Reload after write failed; task list is stale",
                client_id=self.client_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    # --------------------------------- queries --------------------------------- #

    async def get_filtered_page(self) -> PageResult:
        async with self._lock:
            await self._ensure_loaded()
            return self.session.page_window()

    async def get_dashboard(self) -> DashboardSummary:
        async with self._lock:
            await self._ensure_loaded()
            return compute_dashboard(self.session.filtered_tasks())

    async def project_options(self) -> List[Project]:
        async with self._lock:
            await self._ensure_loaded()
            return list(self.session.projects)

    async def batch_preview(self) -> BatchPreview:
        async with self._lock:
            await self._ensure_loaded()
            return self.batch.preview(self.session)

    async def get_task_detail(self, task_id: str) -> RebateTask:
        """Re-read one record upstream and refresh it in the session."""
        async with self._lock:
            await self._ensure_loaded()
            current = require_task(self.session, task_id)
            record = await self.integrations.collaborations.get_collaboration(task_id)
            if record is None:
                raise TaskNotFoundError(task_id)
            refreshed = aggregate_rebate_tasks([record], self.session.projects)
            if not refreshed:
                logger.warning("Task no longer rebate-eligible upstream", task_id=task_id)
                return current
            self.session.update_task(refreshed[0])
            return refreshed[0]

    def get_session_snapshot(self) -> Dict[str, Any]:
        s = self.session
        criteria = s.filters.normalized()
        return {
            "client_id": s.client_id,
            "project_id": criteria.project_id,
            "status": criteria.status.value if criteria.status else None,
            "talent_name": criteria.talent_name,
            "current_page": s.current_page,
            "items_per_page": s.items_per_page,
            "batch_mode": s.batch_mode.value,
            "selected_task_ids": sorted(s.selected_ids),
            "stale": s.stale,
        }

    # -------------------------------- commands --------------------------------- #

    async def dispatch(self, command: Any) -> Any:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")
        async with self._lock:
            logger.debug("Dispatching command", command=type(command).__name__, client_id=self.client_id)
            return await handler(command)

    async def _handle_reload(self, command: Reload) -> PageResult:
        await self._load()
        return self.session.page_window()

    async def _handle_set_filter(self, command: SetFilter) -> PageResult:
        await self._ensure_loaded()
        self.session.filters = FilterCriteria(
            project_id=command.project_id,
            status=command.status,
            talent_name=command.talent_name,
        ).normalized()
        self.session.current_page = 1
        return self.session.page_window()

    async def _handle_reset_filters(self, command: ResetFilters) -> PageResult:
        await self._ensure_loaded()
        self.session.filters = FilterCriteria()
        self.session.current_page = 1
        return self.session.page_window()

    async def _handle_set_page(self, command: SetPage) -> PageResult:
        await self._ensure_loaded()
        self.session.current_page = command.page
        return self.session.page_window()

    async def _handle_set_items_per_page(self, command: SetItemsPerPage) -> PageResult:
        await self._ensure_loaded()
        self.session.items_per_page = self.preferences.set_items_per_page(self.client_id, command.items_per_page)
        self.session.current_page = 1
        return self.session.page_window()

    async def _handle_enter_batch(self, command: EnterBatchMode) -> None:
        self.batch.enter_batch_mode(self.session)

    async def _handle_exit_batch(self, command: ExitBatchMode) -> None:
        self.batch.exit_batch_mode(self.session)

    async def _handle_toggle_selection(self, command: ToggleSelection) -> bool:
        return self.batch.toggle_selection(self.session, command.task_id)

    async def _handle_select_all(self, command: SelectAllEligible) -> List[str]:
        await self._ensure_loaded()
        return self.batch.select_all_eligible(self.session)

    async def _handle_clear_selection(self, command: ClearSelection) -> None:
        self.batch.clear_selection(self.session)

    async def _handle_save_recovery(self, command: SaveRecovery) -> Optional[RebateTask]:
        await self._ensure_loaded()
        await self.recovery.save_recovery(
            self.session,
            command.task_id,
            amount=command.amount,
            recovery_date=command.recovery_date,
            reason=command.reason,
        )
        await self._reload_after_write()
        return self.session.get_task(command.task_id)

    async def _handle_delete_recovery(self, command: DeleteRecovery) -> bool:
        if not command.confirmed:
            raise ConfirmationRequiredError("delete_recovery")
        await self._ensure_loaded()
        deleted = await self.recovery.delete_recovery(self.session, command.task_id)
        if deleted:
            await self._reload_after_write()
        return deleted

    async def _handle_batch_full_recovery(self, command: BatchFullRecovery) -> BatchRecoveryOutcome:
        await self._ensure_loaded()
        if not self.batch.eligible_tasks(self.session, command.selection):
            return BatchRecoveryOutcome(nothing_to_recover=True)
        if not command.confirmed:
            raise ConfirmationRequiredError("batch_full_recovery")
        outcome = await self.batch.batch_full_recovery(self.session, command.selection)
        await self._reload_after_write()
        return outcome

    async def _handle_quick_full_recovery(self, command: QuickFullRecovery) -> Optional[RebateTask]:
        await self._ensure_loaded()
        await self.batch.quick_full_recovery(self.session, command.task_id)
        await self._reload_after_write()
        return self.session.get_task(command.task_id)

    async def _handle_add_evidence(self, command: AddEvidence) -> List[str]:
        await self._ensure_loaded()
        urls = await self.evidence.add_evidence(self.session, command.task_id, command.files)
        await self._reload_after_write()
        return urls

    async def _handle_remove_evidence(self, command: RemoveEvidence) -> List[str]:
        if not command.confirmed:
            raise ConfirmationRequiredError("remove_evidence")
        await self._ensure_loaded()
        urls = await self.evidence.remove_evidence(self.session, command.task_id, command.index)
        await self._reload_after_write()
        return urls


class ControllerRegistry:
    """Lazily creates one controller per client id.

    At most ``max_sessions`` controllers are kept; the least recently used one
    is dropped when a new client arrives. An evicted client gets a fresh
    session on its next request (items-per-page survives in the preference
    store; filters and selection do not).
    """

    def __init__(
        self,
        integrations: Integrations,
        preferences: PreferenceStore,
        max_sessions: Optional[int] = None,
    ):
        self.integrations = integrations
        self.preferences = preferences
        self.max_sessions = max(1, int(max_sessions or API_SETTINGS["max_sessions"]))
        self._controllers: "OrderedDict[str, RebateController]" = OrderedDict()

    def get(self, client_id: str) -> RebateController:
        controller = self._controllers.get(client_id)
        if controller is not None:
            self._controllers.move_to_end(client_id)
            return controller
        controller = RebateController(client_id, self.integrations, self.preferences)
        self._controllers[client_id] = controller
        logger.info("Created rebate session", client_id=client_id)
        while len(self._controllers) > self.max_sessions:
            evicted, _ = self._controllers.popitem(last=False)
            logger.info("Evicted idle rebate session", client_id=evicted, max_sessions=self.max_sessions)
        return controller

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)


def task_state(task: RebateTask) -> str:
    return classify(task).value


__all__ = ["RebateController", "ControllerRegistry", "task_state"]
