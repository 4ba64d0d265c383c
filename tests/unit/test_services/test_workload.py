"""Tests for workload and client overview aggregation."""

import pytest
from datetime import datetime, timedelta, timezone

from designdesk.models.enums import ClientPriority, TaskStatus, UserRole, WorkloadStatus
from designdesk.services.workload import (
    WorkloadService,
    average_completion_days,
    classify_client_priority,
    classify_workload,
    compute_client_overviews,
    compute_designer_workloads,
    designer_task_stats,
    is_overdue,
    marketplace_tasks,
)
from tests.utils.factories import make_task, make_user

NOW = datetime(2024, 7, 1, 12, tzinfo=timezone.utc)


def _assigned(designer_id, status=TaskStatus.IN_PROGRESS, **overrides):
    return make_task(status=status, assigned_designer=designer_id, **overrides)


@pytest.mark.unit
@pytest.mark.parametrize("active,overdue,expected", [
    (0, 0, WorkloadStatus.LOW),
    (1, 0, WorkloadStatus.MODERATE),
    (2, 0, WorkloadStatus.MODERATE),
    (3, 0, WorkloadStatus.HIGH),
    (4, 0, WorkloadStatus.HIGH),
    (5, 0, WorkloadStatus.OVERLOADED),
    (0, 1, WorkloadStatus.OVERLOADED),
])
def test_classify_workload(active, overdue, expected):
    assert classify_workload(active, overdue) == expected


@pytest.mark.unit
@pytest.mark.parametrize("active,overdue,expected", [
    (0, 0, ClientPriority.LOW),
    (1, 0, ClientPriority.MEDIUM),
    (3, 0, ClientPriority.HIGH),
    (1, 1, ClientPriority.URGENT),
])
def test_classify_client_priority(active, overdue, expected):
    assert classify_client_priority(active, overdue) == expected


@pytest.mark.unit
def test_overdue_ignores_completed_and_missing_deadline():
    past = NOW - timedelta(days=1)

    assert is_overdue(make_task(deadline=past), NOW) is True
    assert is_overdue(make_task(status=TaskStatus.COMPLETED, assigned_designer="d1", deadline=past), NOW) is False
    assert is_overdue(make_task(deadline=NOW + timedelta(days=1)), NOW) is False
    assert is_overdue(make_task(deadline=None), NOW) is False


@pytest.mark.unit
def test_overdue_treats_naive_deadline_as_utc():
    assert is_overdue(make_task(deadline=datetime(2024, 6, 30)), NOW) is True


@pytest.mark.unit
def test_average_completion_days_rounds_to_one_decimal():
    start = datetime(2024, 6, 1, tzinfo=timezone.utc)
    tasks = [
        _assigned("d1", TaskStatus.COMPLETED, created_at=start, updated_at=start + timedelta(days=2)),
        _assigned("d1", TaskStatus.COMPLETED, created_at=start, updated_at=start + timedelta(days=3, hours=3)),
        _assigned("d1", TaskStatus.IN_PROGRESS, created_at=start, updated_at=start + timedelta(days=40)),
    ]

    assert average_completion_days(tasks) == 2.6


@pytest.mark.unit
def test_average_completion_days_without_completed_tasks():
    assert average_completion_days([_assigned("d1")]) == 0.0
    assert average_completion_days([]) == 0.0


@pytest.mark.unit
def test_designer_workload_scenario():
    """Test designers with 0, 4 and 6 active tasks (one overdue) classify and sort."""
    idle = make_user(UserRole.DESIGNER, id="designer-a")
    busy = make_user(UserRole.DESIGNER, id="designer-b")
    swamped = make_user(UserRole.DESIGNER, id="designer-c")

    tasks = [_assigned(busy.id) for _ in range(4)]
    tasks += [_assigned(swamped.id) for _ in range(5)]
    tasks.append(_assigned(swamped.id, deadline=NOW - timedelta(days=2)))

    workloads = compute_designer_workloads([idle, busy, swamped], tasks, now=NOW)

    assert [w.designer.id for w in workloads] == ["designer-c", "designer-b", "designer-a"]
    assert [w.active_tasks for w in workloads] == [6, 4, 0]
    assert [w.workload_status for w in workloads] == [
        WorkloadStatus.OVERLOADED,
        WorkloadStatus.HIGH,
        WorkloadStatus.LOW,
    ]
    assert workloads[0].overdue_tasks == 1


@pytest.mark.unit
def test_designer_workload_counts_and_activity():
    designer = make_user(UserRole.DESIGNER)
    latest = NOW - timedelta(hours=1)
    tasks = [
        _assigned(designer.id, TaskStatus.COMPLETED, updated_at=latest),
        _assigned(designer.id, TaskStatus.READY_FOR_REVIEW, updated_at=NOW - timedelta(days=3)),
        _assigned(designer.id, TaskStatus.CANCELLED, updated_at=NOW - timedelta(days=5)),
        _assigned("someone-else", updated_at=NOW),
    ]

    [workload] = compute_designer_workloads([designer], tasks, now=NOW)

    assert workload.total_tasks == 3
    assert workload.active_tasks == 1
    assert workload.completed_tasks == 1
    assert workload.last_activity == latest
    assert workload.workload_status == WorkloadStatus.MODERATE


@pytest.mark.unit
def test_designer_workload_ties_sorted_by_id():
    designers = [make_user(UserRole.DESIGNER, id=f"designer-{c}") for c in "zyx"]

    workloads = compute_designer_workloads(designers, [], now=NOW)

    assert [w.designer.id for w in workloads] == ["designer-x", "designer-y", "designer-z"]


@pytest.mark.unit
def test_non_designers_excluded_from_workloads():
    users = [make_user(UserRole.CLIENT), make_user(UserRole.ADMIN)]
    assert compute_designer_workloads(users, [], now=NOW) == []


@pytest.mark.unit
def test_client_overview_surfaces_latest_active_designer():
    client = make_user(UserRole.CLIENT)
    older = make_task(
        client.id,
        TaskStatus.IN_PROGRESS,
        assigned_designer="designer-old",
        created_at=NOW - timedelta(days=10),
    )
    newer = make_task(
        client.id,
        TaskStatus.READY_FOR_REVIEW,
        assigned_designer="designer-new",
        created_at=NOW - timedelta(days=2),
    )
    done = make_task(
        client.id,
        TaskStatus.COMPLETED,
        assigned_designer="designer-done",
        created_at=NOW - timedelta(days=1),
    )

    [overview] = compute_client_overviews([client], [older, newer, done], now=NOW)

    assert overview.assigned_designer == "designer-new"
    assert overview.total_tasks == 3
    assert overview.active_tasks == 2
    assert overview.completed_tasks == 1
    assert overview.priority_level == ClientPriority.MEDIUM


@pytest.mark.unit
def test_client_overview_urgent_when_overdue():
    client = make_user(UserRole.CLIENT)
    task = make_task(client.id, deadline=NOW - timedelta(hours=3))

    [overview] = compute_client_overviews([client], [task], now=NOW)

    assert overview.overdue_tasks == 1
    assert overview.priority_level == ClientPriority.URGENT
    assert overview.assigned_designer is None


@pytest.mark.unit
def test_client_without_tasks():
    client = make_user(UserRole.CLIENT)

    [overview] = compute_client_overviews([client], [], now=NOW)

    assert overview.total_tasks == 0
    assert overview.last_activity is None
    assert overview.priority_level == ClientPriority.LOW


@pytest.mark.unit
def test_missing_optional_fields_do_not_fail():
    designer = make_user(UserRole.DESIGNER)
    task = _assigned(designer.id, TaskStatus.COMPLETED, created_at=None, updated_at=None)

    [workload] = compute_designer_workloads([designer], [task], now=NOW)

    assert workload.completed_tasks == 1
    assert workload.average_completion_days == 0.0
    assert workload.last_activity is None


@pytest.mark.unit
def test_aggregation_is_deterministic():
    users = [make_user(UserRole.DESIGNER) for _ in range(3)] + [make_user(UserRole.CLIENT) for _ in range(3)]
    designers = [u for u in users if u.role == UserRole.DESIGNER]
    clients = [u for u in users if u.role == UserRole.CLIENT]
    tasks = [
        make_task(clients[i % 3].id, TaskStatus.IN_PROGRESS, assigned_designer=designers[i % 2].id)
        for i in range(7)
    ]

    first = (compute_designer_workloads(users, tasks, NOW), compute_client_overviews(users, tasks, NOW))
    second = (compute_designer_workloads(users, tasks, NOW), compute_client_overviews(users, tasks, NOW))

    assert [w.model_dump() for w in first[0]] == [w.model_dump() for w in second[0]]
    assert [o.model_dump() for o in first[1]] == [o.model_dump() for o in second[1]]


@pytest.mark.unit
def test_marketplace_and_designer_stats():
    designer_id = "designer-1"
    tasks = [
        make_task(status=TaskStatus.IN_REVIEW),
        make_task(status=TaskStatus.IN_REVIEW),
        _assigned(designer_id, pushed_to_marketplace=True),
        _assigned(designer_id, TaskStatus.COMPLETED),
        make_task(status=TaskStatus.SUBMITTED),
    ]

    assert len(marketplace_tasks(tasks)) == 2

    stats = designer_task_stats(tasks, designer_id)
    assert stats.available == 2
    assert stats.my_tasks == 1
    assert stats.completed == 1
    assert stats.total == 4


@pytest.mark.unit
@pytest.mark.asyncio
async def test_workload_service_overview(task_store, directory, designer_user, client_user):
    task_store.seed(make_task(client_user.id, TaskStatus.IN_PROGRESS, assigned_designer=designer_user.id))
    service = WorkloadService(task_store, directory)

    result = await service.overview(now=NOW)

    [workload] = result["designers"]
    [overview] = result["clients"]
    assert workload.designer.id == designer_user.id
    assert workload.active_tasks == 1
    assert overview.client.id == client_user.id
    assert overview.assigned_designer == designer_user.id
