"""Task lifecycle engine - legal status transitions, side effects and actor checks."""

import re
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from designdesk.models.delivery import ArtifactUpload
from designdesk.models.enums import (
    BrandSize,
    TaskEvent,
    TaskPriority,
    TaskStatus,
    TaskType,
    TERMINAL_STATUSES,
    UserRole,
)
from designdesk.models.task import CreativeRequirements, FeedbackEntry, Task, UploadedFile
from designdesk.models.user import User
from designdesk.services.blob_store import BlobStore, build_artifact_path
from designdesk.services.task_store import TaskStore
from designdesk.services.user_directory import UserDirectory
from designdesk.utils.errors import IllegalTransitionError, InputValidationError, NotFoundError
from designdesk.utils.ids import generate_id
from designdesk.utils.logging import (
    get_structured_logger,
    log_timing,
    mask_user_id,
    sanitize_feedback_text,
)

logger = get_structured_logger(__name__)


TRANSITIONS: dict[tuple[TaskStatus, TaskEvent], TaskStatus] = {
    (TaskStatus.DRAFT, TaskEvent.SUBMIT_DRAFT): TaskStatus.SUBMITTED,
    (TaskStatus.SUBMITTED, TaskEvent.PUSH_TO_MARKETPLACE): TaskStatus.IN_REVIEW,
    (TaskStatus.SUBMITTED, TaskEvent.ASSIGN): TaskStatus.IN_PROGRESS,
    (TaskStatus.SUBMITTED, TaskEvent.REQUEST_INFO): TaskStatus.INFO_REQUESTED,
    (TaskStatus.INFO_REQUESTED, TaskEvent.RESUBMIT): TaskStatus.SUBMITTED,
    (TaskStatus.IN_REVIEW, TaskEvent.CLAIM): TaskStatus.IN_PROGRESS,
    # Re-route a directly assigned task to the marketplace
    (TaskStatus.IN_PROGRESS, TaskEvent.PUSH_TO_MARKETPLACE): TaskStatus.IN_REVIEW,
    (TaskStatus.REVISION_REQUESTED, TaskEvent.PUSH_TO_MARKETPLACE): TaskStatus.IN_REVIEW,
    (TaskStatus.IN_PROGRESS, TaskEvent.SUBMIT_DELIVERY): TaskStatus.READY_FOR_REVIEW,
    (TaskStatus.REVISION_REQUESTED, TaskEvent.SUBMIT_DELIVERY): TaskStatus.READY_FOR_REVIEW,
    (TaskStatus.READY_FOR_REVIEW, TaskEvent.ADMIN_APPROVE): TaskStatus.APPROVED,
    (TaskStatus.READY_FOR_REVIEW, TaskEvent.REQUEST_REVISION): TaskStatus.REVISION_REQUESTED,
    (TaskStatus.APPROVED, TaskEvent.REQUEST_REVISION): TaskStatus.REVISION_REQUESTED,
    (TaskStatus.READY_FOR_REVIEW, TaskEvent.REJECT_DELIVERY): TaskStatus.REVISION_REQUESTED,
    (TaskStatus.APPROVED, TaskEvent.REJECT_DELIVERY): TaskStatus.REVISION_REQUESTED,
    (TaskStatus.READY_FOR_REVIEW, TaskEvent.APPROVE_DELIVERY): TaskStatus.COMPLETED,
    (TaskStatus.APPROVED, TaskEvent.APPROVE_DELIVERY): TaskStatus.COMPLETED,
}
TRANSITIONS.update({
    (status, TaskEvent.CANCEL): TaskStatus.CANCELLED
    for status in TaskStatus
    if status not in TERMINAL_STATUSES
})

EDITABLE_STATUSES = frozenset({TaskStatus.DRAFT, TaskStatus.SUBMITTED, TaskStatus.INFO_REQUESTED})
DELETABLE_STATUSES = frozenset({TaskStatus.SUBMITTED, TaskStatus.INFO_REQUESTED})
# Clients may only cancel before a designer has started work
CLIENT_CANCELLABLE_STATUSES = frozenset({
    TaskStatus.DRAFT,
    TaskStatus.SUBMITTED,
    TaskStatus.INFO_REQUESTED,
    TaskStatus.IN_REVIEW,
})
BRIEF_FIELDS = frozenset({"title", "description", "type", "priority", "requirements", "deadline", "budget"})


def resolve_transition(status: TaskStatus, event: TaskEvent) -> TaskStatus:
    """Return the target state for ``event`` or raise IllegalTransitionError."""
    target = TRANSITIONS.get((status, event))
    if target is None:
        raise IllegalTransitionError(
            "no such transition",
            current_status=status.value,
            event=event.value,
        )
    return target


def check_brief_fields(changes: dict[str, Any]) -> None:
    unknown = set(changes) - BRIEF_FIELDS
    if unknown:
        raise InputValidationError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}",
            fields=sorted(unknown),
        )
    if "title" in changes and not (changes["title"] or "").strip():
        raise InputValidationError("Task title is required", field="title")


def brief_updates(task: Task, changes: dict[str, Any]) -> dict[str, Any]:
    """Validate brief edits against the task model and return typed values."""
    try:
        merged = Task.model_validate({**task.model_dump(), **changes})
    except ValidationError as e:
        raise InputValidationError(
            f"Invalid brief: {e.error_count()} field(s) failed validation",
            fields=sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]}),
        ) from e
    return {field: getattr(merged, field) for field in changes}


def require_feedback(feedback: Optional[str], action: str) -> str:
    """Reject blank feedback; every rejection must tell the client what to change."""
    text = (feedback or "").strip()
    if not text:
        raise InputValidationError(f"Feedback is required to {action}", field="feedback")
    return text


def normalize_url(url: Optional[str]) -> str:
    """Trim a URL and default to https:// when no scheme is given."""
    trimmed = (url or "").strip()
    if trimmed and not re.match(r"^https?://", trimmed, flags=re.IGNORECASE):
        return f"https://{trimmed}"
    return trimmed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def action_label(action: Union[TaskEvent, str]) -> str:
    return action.value if isinstance(action, TaskEvent) else action


class TaskEngine:
    """Shared plumbing for engines that mutate tasks through the store."""

    def __init__(self, store: TaskStore, users: UserDirectory, blobs: Optional[BlobStore] = None):
        self.store = store
        self.users = users
        self.blobs = blobs

    async def load_task(self, task_id: str) -> Task:
        task = await self.store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}", task_id=task_id)
        return task

    async def require_actor(self, actor_id: str, action: Union[TaskEvent, str], *roles: UserRole) -> User:
        """Resolve the acting user and check their role is allowed for ``action``."""
        label = action_label(action)
        actor = await self.users.get_user(actor_id)
        if actor is None:
            raise NotFoundError(f"User not found: {actor_id}", user_id=actor_id)
        if not actor.is_active:
            raise IllegalTransitionError(
                f"user {actor_id} is inactive",
                event=label,
                actor_id=actor_id,
            )
        if roles and actor.role not in roles:
            allowed = ", ".join(role.value for role in roles)
            raise IllegalTransitionError(
                f"{label} requires role {allowed}, actor is {actor.role.value}",
                event=label,
                actor_id=actor_id,
            )
        return actor

    @staticmethod
    def require_owner(task: Task, actor: User, action: Union[TaskEvent, str]) -> None:
        """Clients may only act on their own tasks; admins act on any."""
        if actor.role == UserRole.ADMIN:
            return
        if task.user_id != actor.id:
            raise IllegalTransitionError(
                "only the owning client may perform this action",
                current_status=task.status.value,
                event=action_label(action),
                task_id=task.id,
            )

    @staticmethod
    def require_assigned_designer(task: Task, actor: User, action: Union[TaskEvent, str]) -> None:
        if actor.role == UserRole.ADMIN:
            return
        if task.assigned_designer != actor.id:
            raise IllegalTransitionError(
                "only the assigned designer may perform this action",
                current_status=task.status.value,
                event=action_label(action),
                task_id=task.id,
            )

    async def apply_transition(
        self,
        task: Task,
        event: TaskEvent,
        actor: User,
        updates: Optional[dict[str, Any]] = None,
        expected: Optional[dict[str, Any]] = None,
        conflict_reason: str = "task was modified concurrently",
    ) -> Task:
        """Write ``updates`` plus the target status, conditioned on the status read."""
        target = resolve_transition(task.status, event)
        guard = {"status": task.status, **(expected or {})}

        with log_timing(
            "task_transition",
            logger=logger,
            task_id=task.id,
            event=event.value
        ):
            updated = await self.store.put_task(
                task.id,
                {**(updates or {}), "status": target},
                expected=guard,
            )

        if updated is None:
            raise IllegalTransitionError(
                conflict_reason,
                current_status=task.status.value,
                event=event.value,
                task_id=task.id,
            )

        logger.info(
            "Task transition applied",
            task_id=task.id,
            event=event.value,
            from_status=task.status.value,
            to_status=target.value,
            actor_id=mask_user_id(actor.id),
            actor_role=actor.role.value
        )
        return updated

    async def update_fields(
        self,
        task: Task,
        updates: dict[str, Any],
        expected: Optional[dict[str, Any]] = None,
        action: Optional[str] = None,
    ) -> Task:
        """Write non-status fields, conditioned on the status read."""
        updated = await self.store.put_task(
            task.id,
            updates,
            expected={"status": task.status, **(expected or {})},
        )
        if updated is None:
            raise IllegalTransitionError(
                "task was modified concurrently",
                current_status=task.status.value,
                event=action,
                task_id=task.id,
            )
        return updated

    async def upload(self, artifact: ArtifactUpload, prefix: str, task_id: str) -> str:
        if self.blobs is None:
            raise InputValidationError("File uploads are not configured", field="blobs")
        path = build_artifact_path(prefix, task_id, artifact.name)
        return await self.blobs.upload_artifact(artifact.data, path, artifact.content_type)


class TaskLifecycle(TaskEngine):
    """Client, admin and designer actions on ``Task.status``."""

    async def create_task(
        self,
        actor_id: str,
        title: str,
        description: str = "",
        type: TaskType = TaskType.OTHER,
        priority: TaskPriority = TaskPriority.MEDIUM,
        requirements: Optional[CreativeRequirements] = None,
        deadline: Optional[datetime] = None,
        budget: Optional[float] = None,
        client_id: Optional[str] = None,
        brand_name: Optional[str] = None,
        brand_size: BrandSize = BrandSize.SMALL,
        reference_files: Sequence[ArtifactUpload] = (),
        draft: bool = False,
    ) -> Task:
        """
        Create a task as a client, or as an admin on a client's behalf.

        Reference files are uploaded before anything else is written, so a
        failed upload leaves neither a task nor a new brand profile behind.
        The brand profile is created on the client's first task.
        """
        if not (title or "").strip():
            raise InputValidationError("Task title is required", field="title")

        actor = await self.require_actor(actor_id, "CREATE_TASK", UserRole.CLIENT, UserRole.ADMIN)
        if actor.role == UserRole.ADMIN:
            if not client_id:
                raise InputValidationError("client_id is required when an admin creates a task", field="client_id")
            client = await self.users.get_user(client_id)
            if client is None:
                raise NotFoundError(f"User not found: {client_id}", user_id=client_id)
            if client.role != UserRole.CLIENT:
                raise InputValidationError(
                    f"Tasks can only be created for clients, {client_id} is {client.role.value}",
                    field="client_id",
                )
        else:
            client = actor

        task_id = generate_id()
        requirements = (requirements or CreativeRequirements()).model_copy(deep=True)
        for artifact in reference_files:
            url = await self.upload(artifact, "tasks", task_id)
            requirements.uploaded_files.append(UploadedFile(
                name=artifact.name,
                size=len(artifact.data),
                type=artifact.content_type,
                download_url=url,
            ))

        brand = await self.users.get_brand_for_user(client.id)
        if brand is None:
            brand = await self.users.create_brand(client.id, brand_name or f"{client.name}'s Brand", brand_size)

        task = await self.store.create_task({
            "id": task_id,
            "title": title.strip(),
            "description": description,
            "type": type,
            "priority": priority,
            "status": TaskStatus.DRAFT if draft else TaskStatus.SUBMITTED,
            "user_id": client.id,
            "brand_id": brand.id,
            "requirements": requirements,
            "deadline": deadline,
            "budget": budget,
        })

        logger.info(
            "Task created",
            task_id=task.id,
            status=task.status.value,
            task_type=task.type.value,
            client_id=mask_user_id(client.id),
            created_by_role=actor.role.value,
            reference_files=len(reference_files)
        )
        return task

    async def update_brief(self, task_id: str, actor_id: str, **changes: Any) -> Task:
        """Edit the brief while the task is still with the client."""
        check_brief_fields(changes)

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "EDIT_BRIEF", UserRole.CLIENT)
        self.require_owner(task, actor, "EDIT_BRIEF")
        if task.status not in EDITABLE_STATUSES:
            raise IllegalTransitionError(
                "the brief can only be edited before work is routed",
                current_status=task.status.value,
                event="EDIT_BRIEF",
                task_id=task.id,
            )
        return await self.update_fields(task, brief_updates(task, changes), action="EDIT_BRIEF")

    async def submit_draft(self, task_id: str, actor_id: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.SUBMIT_DRAFT, UserRole.CLIENT)
        self.require_owner(task, actor, TaskEvent.SUBMIT_DRAFT)
        return await self.apply_transition(task, TaskEvent.SUBMIT_DRAFT, actor)

    async def delete_task(self, task_id: str, actor_id: str) -> None:
        """Hard-delete a task that no designer has touched yet."""
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "DELETE", UserRole.CLIENT)
        if task.user_id != actor.id:
            raise IllegalTransitionError(
                "only the owning client may delete a task",
                current_status=task.status.value,
                event="DELETE",
                task_id=task.id,
            )
        if task.status not in DELETABLE_STATUSES:
            raise IllegalTransitionError(
                "only SUBMITTED or INFO_REQUESTED tasks can be deleted",
                current_status=task.status.value,
                event="DELETE",
                task_id=task.id,
            )

        deleted = await self.store.delete_task(
            task.id,
            expected={"status": task.status, "assigned_designer": None},
        )
        if not deleted:
            if await self.store.get_task(task.id) is None:
                raise NotFoundError(f"Task not found: {task_id}", task_id=task_id)
            raise IllegalTransitionError(
                "task was modified concurrently",
                current_status=task.status.value,
                event="DELETE",
                task_id=task.id,
            )
        logger.info("Task deleted", task_id=task.id, status=task.status.value)

    async def push_to_marketplace(self, task_id: str, actor_id: str) -> Task:
        """Route a task to the designer marketplace, releasing any assignment."""
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.PUSH_TO_MARKETPLACE, UserRole.ADMIN)
        if task.pushed_to_marketplace:
            raise IllegalTransitionError(
                "task is already in the marketplace",
                current_status=task.status.value,
                event=TaskEvent.PUSH_TO_MARKETPLACE.value,
                task_id=task.id,
            )

        expected: dict[str, Any] = {"pushed_to_marketplace": False}
        if task.status == TaskStatus.SUBMITTED:
            expected["assigned_designer"] = None

        if task.assigned_designer:
            logger.info(
                "Releasing designer for marketplace re-route",
                task_id=task.id,
                designer_id=mask_user_id(task.assigned_designer)
            )

        return await self.apply_transition(
            task,
            TaskEvent.PUSH_TO_MARKETPLACE,
            actor,
            updates={
                "pushed_to_marketplace": True,
                "pushed_at": utcnow(),
                "assigned_designer": None,
                "claimed_at": None,
            },
            expected=expected,
        )

    async def assign_designer(self, task_id: str, actor_id: str, designer_id: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.ASSIGN, UserRole.ADMIN)

        designer = await self.users.get_user(designer_id)
        if designer is None:
            raise NotFoundError(f"User not found: {designer_id}", user_id=designer_id)
        if designer.role != UserRole.DESIGNER or not designer.is_active:
            raise IllegalTransitionError(
                f"{designer_id} is not an active designer",
                current_status=task.status.value,
                event=TaskEvent.ASSIGN.value,
                task_id=task.id,
            )
        if task.assigned_designer:
            raise IllegalTransitionError(
                "already claimed",
                current_status=task.status.value,
                event=TaskEvent.ASSIGN.value,
                task_id=task.id,
            )

        return await self.apply_transition(
            task,
            TaskEvent.ASSIGN,
            actor,
            updates={"assigned_designer": designer.id, "claimed_at": utcnow()},
            expected={"assigned_designer": None, "pushed_to_marketplace": False},
        )

    async def request_info(self, task_id: str, actor_id: str, feedback: str) -> Task:
        """Send a SUBMITTED task back to the client with actionable feedback."""
        text = require_feedback(feedback, "request more information")

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.REQUEST_INFO, UserRole.ADMIN)
        if task.open_feedback_entry() is not None:
            raise IllegalTransitionError(
                "an information request is already open",
                current_status=task.status.value,
                event=TaskEvent.REQUEST_INFO.value,
                task_id=task.id,
            )

        now = utcnow()
        entry = FeedbackEntry(
            id=generate_id(),
            feedback=text,
            requested_by=actor.id,
            requested_at=now,
        )
        updated = await self.apply_transition(
            task,
            TaskEvent.REQUEST_INFO,
            actor,
            updates={
                "admin_feedback": text,
                "admin_feedback_history": [*task.admin_feedback_history, entry],
                "reviewed_at": now,
            },
        )
        logger.info(
            "Information requested from client",
            task_id=task.id,
            feedback=sanitize_feedback_text(text),
            history_length=len(updated.admin_feedback_history)
        )
        return updated

    async def resubmit(self, task_id: str, actor_id: str, **changes: Any) -> Task:
        """Client answers an information request, optionally editing the brief."""
        check_brief_fields(changes)

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.RESUBMIT, UserRole.CLIENT)
        self.require_owner(task, actor, TaskEvent.RESUBMIT)

        now = utcnow()
        history = [
            entry.model_copy(update={"resolved_at": now}) if entry.is_open else entry
            for entry in task.admin_feedback_history
        ]
        return await self.apply_transition(
            task,
            TaskEvent.RESUBMIT,
            actor,
            updates={
                **brief_updates(task, changes),
                "admin_feedback": "",
                "admin_feedback_history": history,
            },
        )

    async def claim(self, task_id: str, actor_id: str) -> Task:
        """Designer takes an unclaimed marketplace task (atomic conditional write)."""
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.CLAIM, UserRole.DESIGNER)

        if task.assigned_designer:
            raise IllegalTransitionError(
                "already claimed",
                current_status=task.status.value,
                event=TaskEvent.CLAIM.value,
                task_id=task.id,
            )
        if not task.is_claimable:
            raise IllegalTransitionError(
                "not available in the marketplace",
                current_status=task.status.value,
                event=TaskEvent.CLAIM.value,
                task_id=task.id,
            )

        return await self.apply_transition(
            task,
            TaskEvent.CLAIM,
            actor,
            updates={"assigned_designer": actor.id, "claimed_at": utcnow()},
            expected={"assigned_designer": None, "pushed_to_marketplace": True},
            conflict_reason="already claimed",
        )

    async def approve_for_client(self, task_id: str, actor_id: str) -> Task:
        """Admin quality gate: release a submitted delivery to the client."""
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.ADMIN_APPROVE, UserRole.ADMIN)
        return await self.apply_transition(
            task,
            TaskEvent.ADMIN_APPROVE,
            actor,
            updates={"reviewed_at": utcnow()},
        )

    async def cancel(self, task_id: str, actor_id: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.CANCEL, UserRole.ADMIN, UserRole.CLIENT)
        if actor.role == UserRole.CLIENT:
            self.require_owner(task, actor, TaskEvent.CANCEL)
            if task.status not in CLIENT_CANCELLABLE_STATUSES:
                raise IllegalTransitionError(
                    "clients cannot cancel once a designer has started",
                    current_status=task.status.value,
                    event=TaskEvent.CANCEL.value,
                    task_id=task.id,
                )
        return await self.apply_transition(task, TaskEvent.CANCEL, actor)

    async def update_admin_notes(self, task_id: str, actor_id: str, notes: str) -> Task:
        task = await self.load_task(task_id)
        await self.require_actor(actor_id, "UPDATE_ADMIN_NOTES", UserRole.ADMIN)
        if task.is_terminal:
            raise IllegalTransitionError(
                "task is closed",
                current_status=task.status.value,
                event="UPDATE_ADMIN_NOTES",
                task_id=task.id,
            )
        return await self.update_fields(task, {"admin_notes": notes or ""}, action="UPDATE_ADMIN_NOTES")

    async def update_designer_notes(self, task_id: str, actor_id: str, notes: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "UPDATE_NOTES", UserRole.DESIGNER, UserRole.ADMIN)
        self.require_assigned_designer(task, actor, "UPDATE_NOTES")
        if task.is_terminal:
            raise IllegalTransitionError(
                "task is closed",
                current_status=task.status.value,
                event="UPDATE_NOTES",
                task_id=task.id,
            )
        return await self.update_fields(task, {"designer_notes": notes or ""}, action="UPDATE_NOTES")

    async def set_in_design_link(self, task_id: str, actor_id: str, url: str) -> Task:
        link = normalize_url(url)
        if not link:
            raise InputValidationError("Please enter a valid URL", field="url")

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "UPDATE_LINK", UserRole.DESIGNER, UserRole.ADMIN)
        self.require_assigned_designer(task, actor, "UPDATE_LINK")
        if task.is_terminal:
            raise IllegalTransitionError(
                "task is closed",
                current_status=task.status.value,
                event="UPDATE_LINK",
                task_id=task.id,
            )
        return await self.update_fields(task, {"in_design_link": link}, action="UPDATE_LINK")
