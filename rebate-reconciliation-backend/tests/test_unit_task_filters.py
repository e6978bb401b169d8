from rebate_service.models.db.enums import StatusClass
from rebate_service.models.schemas.collaborations import CollaborationRecord
from rebate_service.services.task_aggregator import aggregate_rebate_tasks
from rebate_service.services.task_filters import FilterCriteria, apply_filters, clamp_page, paginate, total_pages


def _tasks(record_factory, projects):
    raw = [
        record_factory("1", talent_name="Alice"),
        record_factory("2", talent_name="alicia", project_id="p2", actual=1000.0, recovery_date="2024-01-01"),
        record_factory("3", talent_name="Bob", actual=900.0, recovery_date="2024-01-01", reason="short"),
        record_factory("4", talent_name="Carol", project_id="p2"),
    ]
    return aggregate_rebate_tasks([CollaborationRecord.model_validate(r) for r in raw], projects)


def test_status_filter_maps_to_state(record_factory, projects):
    tasks = _tasks(record_factory, projects)
    assert [t.id for t in apply_filters(tasks, FilterCriteria(status=StatusClass.PENDING))] == ["1", "4"]
    assert [t.id for t in apply_filters(tasks, FilterCriteria(status=StatusClass.RECOVERED))] == ["2"]
    assert [t.id for t in apply_filters(tasks, FilterCriteria(status=StatusClass.DISCREPANCY))] == ["3"]


def test_project_filter_exact_or_all(record_factory, projects):
    tasks = _tasks(record_factory, projects)
    assert [t.id for t in apply_filters(tasks, FilterCriteria(project_id="p2"))] == ["2", "4"]
    assert len(apply_filters(tasks, FilterCriteria(project_id="all"))) == 4
    assert len(apply_filters(tasks, FilterCriteria(project_id=""))) == 4


def test_name_filter_case_insensitive_substring(record_factory, projects):
    tasks = _tasks(record_factory, projects)
    assert [t.id for t in apply_filters(tasks, FilterCriteria(talent_name="ALI"))] == ["1", "2"]
    assert [t.id for t in apply_filters(tasks, FilterCriteria(talent_name="  bob "))] == ["3"]


def test_combined_filters(record_factory, projects):
    tasks = _tasks(record_factory, projects)
    criteria = FilterCriteria(project_id="p2", status=StatusClass.PENDING, talent_name="car")
    assert [t.id for t in apply_filters(tasks, criteria)] == ["4"]


def test_total_pages_minimum_one():
    assert total_pages(0, 15) == 1
    assert total_pages(15, 15) == 1
    assert total_pages(16, 15) == 2


def test_page_is_clamped(record_factory, projects):
    tasks = _tasks(record_factory, projects)
    assert clamp_page(0, 4, 2) == 1
    assert clamp_page(9, 4, 2) == 2
    result = paginate(tasks, 9, 3)
    assert result.page == 2
    assert result.total_pages == 2
    assert result.total_count == 4
    assert [t.id for t in result.tasks] == ["4"]


def test_empty_list_has_one_empty_page():
    result = paginate([], 3, 15)
    assert result.page == 1
    assert result.total_pages == 1
    assert result.tasks == []
