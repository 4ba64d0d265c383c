"""Workload and client overview aggregation - pure views over the task set."""

from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from designdesk.models.enums import (
    ACTIVE_STATUSES,
    ClientPriority,
    TaskStatus,
    UserRole,
    WorkloadStatus,
)
from designdesk.models.task import Task
from designdesk.models.user import User
from designdesk.models.workload import ClientOverview, DesignerTaskStats, DesignerWorkload
from designdesk.services.task_store import TaskStore
from designdesk.services.user_directory import UserDirectory
from designdesk.utils.logging import get_structured_logger, log_timing, timed

logger = get_structured_logger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so comparisons never raise."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_active(task: Task) -> bool:
    return task.status in ACTIVE_STATUSES


def is_overdue(task: Task, now: datetime) -> bool:
    deadline = _aware(task.deadline)
    if deadline is None:
        return False
    return deadline < now and task.status != TaskStatus.COMPLETED


def average_completion_days(tasks: Iterable[Task]) -> float:
    """Mean created-to-last-update time of completed tasks, in days, one decimal."""
    durations = []
    for task in tasks:
        if task.status != TaskStatus.COMPLETED:
            continue
        created = _aware(task.created_at)
        finished = _aware(task.updated_at)
        if created is None or finished is None:
            continue
        durations.append((finished - created).total_seconds() / SECONDS_PER_DAY)
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 1)


def last_activity(tasks: Iterable[Task]) -> Optional[datetime]:
    stamps = [_aware(task.updated_at) for task in tasks if task.updated_at is not None]
    return max(stamps) if stamps else None


def classify_workload(active: int, overdue: int) -> WorkloadStatus:
    if active >= 5 or overdue > 0:
        return WorkloadStatus.OVERLOADED
    if active >= 3:
        return WorkloadStatus.HIGH
    if active >= 1:
        return WorkloadStatus.MODERATE
    return WorkloadStatus.LOW


def classify_client_priority(active: int, overdue: int) -> ClientPriority:
    if overdue > 0:
        return ClientPriority.URGENT
    if active >= 3:
        return ClientPriority.HIGH
    if active >= 1:
        return ClientPriority.MEDIUM
    return ClientPriority.LOW


def compute_designer_workloads(
    users: Sequence[User],
    tasks: Sequence[Task],
    now: Optional[datetime] = None,
) -> list[DesignerWorkload]:
    """Per-designer workload, busiest first (ties by designer id)."""
    now = _aware(now) or datetime.now(timezone.utc)
    workloads = []
    for designer in users:
        if designer.role != UserRole.DESIGNER:
            continue
        designer_tasks = [t for t in tasks if t.assigned_designer == designer.id]
        active = sum(1 for t in designer_tasks if is_active(t))
        overdue = sum(1 for t in designer_tasks if is_overdue(t, now))
        workloads.append(DesignerWorkload(
            designer=designer,
            total_tasks=len(designer_tasks),
            active_tasks=active,
            completed_tasks=sum(1 for t in designer_tasks if t.status == TaskStatus.COMPLETED),
            overdue_tasks=overdue,
            average_completion_days=average_completion_days(designer_tasks),
            last_activity=last_activity(designer_tasks),
            workload_status=classify_workload(active, overdue),
        ))
    return sorted(workloads, key=lambda w: (-w.active_tasks, w.designer.id))


def compute_client_overviews(
    users: Sequence[User],
    tasks: Sequence[Task],
    now: Optional[datetime] = None,
) -> list[ClientOverview]:
    """Per-client task overview, most active first (ties by client id)."""
    now = _aware(now) or datetime.now(timezone.utc)
    overviews = []
    for client in users:
        if client.role != UserRole.CLIENT:
            continue
        client_tasks = [t for t in tasks if t.user_id == client.id]
        active_tasks = [t for t in client_tasks if is_active(t)]
        overdue = sum(1 for t in client_tasks if is_overdue(t, now))

        # Most recent active task decides who is shown as the client's designer
        latest_active = max(
            active_tasks,
            key=lambda t: (_aware(t.created_at) or _EPOCH, t.id),
            default=None,
        )

        overviews.append(ClientOverview(
            client=client,
            total_tasks=len(client_tasks),
            active_tasks=len(active_tasks),
            completed_tasks=sum(1 for t in client_tasks if t.status == TaskStatus.COMPLETED),
            overdue_tasks=overdue,
            assigned_designer=latest_active.assigned_designer if latest_active else None,
            last_activity=last_activity(client_tasks),
            priority_level=classify_client_priority(len(active_tasks), overdue),
        ))
    return sorted(overviews, key=lambda o: (-o.active_tasks, o.client.id))


def marketplace_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Tasks open for designers to claim."""
    return [t for t in tasks if t.pushed_to_marketplace and not t.assigned_designer]


def designer_task_stats(tasks: Sequence[Task], designer_id: str) -> DesignerTaskStats:
    available = marketplace_tasks(tasks)
    mine = [t for t in tasks if t.assigned_designer == designer_id]
    return DesignerTaskStats(
        available=len(available),
        my_tasks=sum(1 for t in mine if t.status != TaskStatus.COMPLETED),
        completed=sum(1 for t in mine if t.status == TaskStatus.COMPLETED),
        total=len(available) + len(mine),
    )


class WorkloadService:
    """Loads a users/tasks snapshot and runs the pure aggregations over it."""

    def __init__(self, store: TaskStore, users: UserDirectory):
        self.store = store
        self.users = users

    async def snapshot(self) -> tuple[list[User], list[Task]]:
        with log_timing("workload_snapshot", logger=logger):
            users = await self.users.list_users()
            tasks = await self.store.list_tasks()
        return users, tasks

    @timed("workload_overview", logger=logger)
    async def overview(self, now: Optional[datetime] = None) -> dict:
        users, tasks = await self.snapshot()
        designers = compute_designer_workloads(users, tasks, now)
        clients = compute_client_overviews(users, tasks, now)
        logger.info(
            "Workload overview computed",
            designers=len(designers),
            clients=len(clients),
            tasks=len(tasks),
            overloaded=sum(1 for w in designers if w.workload_status == WorkloadStatus.OVERLOADED)
        )
        return {"designers": designers, "clients": clients}
