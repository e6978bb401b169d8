import asyncio

import pytest

from rebate_service.exceptions import RebateValidationError, RemoteError
from rebate_service.models.db.enums import BatchMode, RecoveryState, ValidationCode
from rebate_service.services.batch_recovery import NOTHING_TO_RECOVER, BatchRecoveryOrchestrator
from rebate_service.services.recovery_classifier import classify
from rebate_service.utils.time import today_iso


@pytest.fixture()
def orchestrator(source):
    return BatchRecoveryOrchestrator(source, max_concurrency=2)


def test_batch_with_one_failure(source, orchestrator, session_factory, record_factory):
    for i in range(1, 6):
        source.add(record_factory(str(i), receivable=100.0 * i))
    source.fail_patch_ids.add("3")
    session = session_factory()
    orchestrator.enter_batch_mode(session)
    for i in range(1, 6):
        orchestrator.toggle_selection(session, str(i))

    outcome = asyncio.run(orchestrator.batch_full_recovery(session))

    assert outcome.success_count == 4
    assert outcome.failed_count == 1
    assert outcome.message == "Done: 4 succeeded, 1 failed"
    assert session.batch_mode == BatchMode.OFF
    reloaded = session_factory()
    for task_id in ("1", "2", "4", "5"):
        task = reloaded.get_task(task_id)
        assert classify(task) == RecoveryState.RECOVERED_MATCHED
        assert task.recovery_date == today_iso()
        assert task.discrepancy_reason is None
    assert classify(reloaded.get_task("3")) == RecoveryState.NOT_RECOVERED


def test_batch_processes_only_eligible(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1"))
    source.add(record_factory("2"))
    source.add(record_factory("3", actual=1000.0, recovery_date="2024-01-01"))
    source.add(record_factory("4", actual=10.0, recovery_date="2024-01-01", reason="short"))
    session = session_factory()
    session.selected_ids = {"1", "2", "3", "4", "ghost"}

    outcome = asyncio.run(orchestrator.batch_full_recovery(session))

    assert outcome.processed == 2
    assert outcome.success_count + outcome.failed_count == 2
    assert sorted(task_id for task_id, _ in source.patch_calls) == ["1", "2"]


def test_batch_keeps_evidence(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1", evidence=["https://blobs/x.png"]))
    session = session_factory()
    session.selected_ids = {"1"}
    asyncio.run(orchestrator.batch_full_recovery(session))
    assert source.record("1").evidence_urls == ["https://blobs/x.png"]
    assert source.record("1").actual_rebate == 1000.0


def test_nothing_to_recover_leaves_mode_alone(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1", actual=1000.0, recovery_date="2024-01-01"))
    session = session_factory()
    orchestrator.enter_batch_mode(session)
    session.selected_ids = {"1"}

    outcome = asyncio.run(orchestrator.batch_full_recovery(session))

    assert outcome.nothing_to_recover
    assert outcome.message == NOTHING_TO_RECOVER
    assert outcome.processed == 0
    assert session.in_batch_mode
    assert source.patch_calls == []


def test_selection_survives_mode_toggles(orchestrator, session_factory, source, record_factory):
    source.add(record_factory("1"))
    session = session_factory()
    orchestrator.enter_batch_mode(session)
    assert orchestrator.toggle_selection(session, "1") is True
    orchestrator.exit_batch_mode(session)
    assert session.selected_ids == {"1"}
    orchestrator.enter_batch_mode(session)
    assert orchestrator.toggle_selection(session, "1") is False
    assert session.selected_ids == set()


def test_select_all_is_current_page_pending_only(source, orchestrator, session_factory, record_factory):
    for i in range(1, 6):
        source.add(record_factory(str(i)))
    source.add(record_factory("6", actual=1000.0, recovery_date="2024-01-01"))
    session = session_factory()
    session.filters.status = None
    session.items_per_page = 3
    session.current_page = 2
    session.selected_ids = {"1", "stale"}

    ids = orchestrator.select_all_eligible(session)

    assert ids == ["4", "5"]
    assert session.selected_ids == {"4", "5"}
    orchestrator.clear_selection(session)
    assert session.selected_ids == set()


def test_preview(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1", receivable=100.25))
    source.add(record_factory("2", receivable=50.5))
    source.add(record_factory("3", actual=1000.0, recovery_date="2024-01-01"))
    session = session_factory()
    session.selected_ids = {"1", "2", "3"}
    preview = orchestrator.preview(session)
    assert preview.eligible_count == 2
    assert preview.total_amount == 150.75
    assert preview.recovery_date == today_iso()


def test_quick_full_recovery(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1", receivable=321.0))
    session = session_factory()
    patch = asyncio.run(orchestrator.quick_full_recovery(session, "1"))
    assert patch["actual_rebate"] == 321.0
    assert classify(session_factory().get_task("1")) == RecoveryState.RECOVERED_MATCHED


def test_quick_full_recovery_guards_and_surfaces(source, orchestrator, session_factory, record_factory):
    source.add(record_factory("1", actual=1000.0, recovery_date="2024-01-01"))
    source.add(record_factory("2"))
    source.fail_patch_ids.add("2")
    session = session_factory()
    with pytest.raises(RebateValidationError) as exc:
        asyncio.run(orchestrator.quick_full_recovery(session, "1"))
    assert exc.value.code == ValidationCode.ALREADY_RECOVERED
    with pytest.raises(RemoteError):
        asyncio.run(orchestrator.quick_full_recovery(session, "2"))
