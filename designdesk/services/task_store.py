"""Task store - persistence interface for tasks and its Supabase implementation."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from designdesk.models.enums import TaskStatus
from designdesk.models.task import Task
from designdesk.services.supabase_client import SupabaseClient, apply_filters, to_row
from designdesk.utils.config import StoreConfig
from designdesk.utils.errors import InputValidationError, NotFoundError, StoreError
from designdesk.utils.ids import generate_id
from designdesk.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

CREATABLE_STATUSES = (TaskStatus.SUBMITTED, TaskStatus.DRAFT)


class TaskStore(ABC):
    """Document-style task persistence.

    ``put_task`` merges ``updates`` into the stored task and always stamps
    ``updated_at``. When ``expected`` is given the write is conditional: it
    only lands if every expected field still holds the given value, and
    ``None`` is returned otherwise. A single call is atomic; nothing spans
    calls.
    """

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def put_task(
        self,
        task_id: str,
        updates: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> Optional[Task]:
        ...

    @abstractmethod
    async def list_tasks(
        self,
        owner_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
    ) -> list[Task]:
        ...

    @abstractmethod
    async def create_task(self, initial: dict[str, Any]) -> Task:
        ...

    @abstractmethod
    async def delete_task(self, task_id: str, expected: Optional[dict[str, Any]] = None) -> bool:
        """Remove the task; with ``expected``, only while those fields still hold."""
        ...


def prepare_new_task(initial: dict[str, Any]) -> dict[str, Any]:
    """Validate and stamp a new task document (shared by store implementations)."""
    status = TaskStatus(initial.get("status", TaskStatus.SUBMITTED))
    if status not in CREATABLE_STATUSES:
        raise InputValidationError(
            f"New tasks must start as SUBMITTED or DRAFT, got {status.value}",
            status=status.value,
        )

    now = datetime.now(timezone.utc)
    document = dict(initial)
    document.setdefault("id", generate_id())
    document["status"] = status
    document["created_at"] = now
    document["updated_at"] = now

    # Round-trip through the model so bad input fails before the write
    return Task.model_validate(document).model_dump()


class SupabaseTaskStore(TaskStore):
    """Task store backed by a Supabase table (JSON columns for nested data)."""

    def __init__(self, table: str = StoreConfig.TASKS_TABLE):
        self.table = table

    async def get_task(self, task_id: str) -> Optional[Task]:
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).select("*").eq("id", task_id).execute()
            except Exception as e:
                raise StoreError(f"Failed to get task: {e}", task_id=task_id) from e
        if result.data and len(result.data) > 0:
            return Task.model_validate(result.data[0])
        return None

    async def put_task(
        self,
        task_id: str,
        updates: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
    ) -> Optional[Task]:
        payload = to_row({**updates, "updated_at": datetime.now(timezone.utc)})
        async with SupabaseClient() as client:
            try:
                query = client.table(self.table).update(payload).eq("id", task_id)
                if expected:
                    query = apply_filters(query, expected)
                result = query.execute()
            except Exception as e:
                raise StoreError(f"Failed to update task: {e}", task_id=task_id) from e

        if result.data and len(result.data) > 0:
            return Task.model_validate(result.data[0])

        if expected:
            logger.info(
                "Conditional task write did not match",
                task_id=task_id,
                expected=sorted(expected.keys())
            )
            return None
        raise NotFoundError(f"Task not found: {task_id}", task_id=task_id)

    async def list_tasks(
        self,
        owner_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
    ) -> list[Task]:
        async with SupabaseClient() as client:
            try:
                query = client.table(self.table).select("*")
                if owner_id:
                    query = query.eq("user_id", owner_id)
                if assignee_id:
                    query = query.eq("assigned_designer", assignee_id)
                result = query.order("created_at", desc=True).execute()
            except Exception as e:
                raise StoreError(f"Failed to list tasks: {e}") from e
        return [Task.model_validate(row) for row in (result.data or [])]

    async def create_task(self, initial: dict[str, Any]) -> Task:
        document = prepare_new_task(initial)
        async with SupabaseClient() as client:
            try:
                result = client.table(self.table).insert(to_row(document)).execute()
            except Exception as e:
                raise StoreError(f"Failed to create task: {e}") from e
        if result.data and len(result.data) > 0:
            return Task.model_validate(result.data[0])
        raise StoreError("Failed to create task: no data returned")

    async def delete_task(self, task_id: str, expected: Optional[dict[str, Any]] = None) -> bool:
        async with SupabaseClient() as client:
            try:
                query = client.table(self.table).delete().eq("id", task_id)
                if expected:
                    query = apply_filters(query, expected)
                result = query.execute()
            except Exception as e:
                raise StoreError(f"Failed to delete task: {e}", task_id=task_id) from e
        return bool(result.data)
