"""Delivery review engine - designer submissions and client/admin review decisions."""

from typing import Optional, Sequence

from designdesk.models.delivery import ArtifactUpload, DesignerDeliveries, DesignerDelivery
from designdesk.models.enums import DeliveryStatus, DeliveryType, TaskEvent, TaskStatus, UserRole
from designdesk.models.task import Task
from designdesk.models.user import User
from designdesk.services.lifecycle import TaskEngine, normalize_url, require_feedback, utcnow
from designdesk.utils.errors import IllegalTransitionError, InputValidationError, NotFoundError
from designdesk.utils.ids import generate_id
from designdesk.utils.logging import get_structured_logger, mask_user_id, sanitize_feedback_text

logger = get_structured_logger(__name__)

# Task states in which the designer may still change the delivery
WORKING_STATUSES = frozenset({
    TaskStatus.IN_PROGRESS,
    TaskStatus.REVISION_REQUESTED,
    TaskStatus.READY_FOR_REVIEW,
})

REVIEW_EVENTS = {
    DeliveryStatus.APPROVED: TaskEvent.APPROVE_DELIVERY,
    DeliveryStatus.REJECTED: TaskEvent.REJECT_DELIVERY,
    DeliveryStatus.REVISION_REQUESTED: TaskEvent.REQUEST_REVISION,
}


class DeliveryReview(TaskEngine):
    """Designer delivery workflow, coupled to the task lifecycle."""

    def _require_editable(self, task: Task, actor: User, action: str) -> DesignerDeliveries:
        self.require_assigned_designer(task, actor, action)
        if task.status not in WORKING_STATUSES:
            raise IllegalTransitionError(
                "deliveries can only change while the task is being worked on",
                current_status=task.status.value,
                event=action,
                task_id=task.id,
            )
        deliveries = task.designer_deliveries or DesignerDeliveries()
        if deliveries.is_locked:
            raise IllegalTransitionError(
                "approved deliveries cannot be changed",
                current_status=task.status.value,
                event=action,
                task_id=task.id,
            )
        return deliveries.model_copy(deep=True)

    async def _write_deliveries(self, task: Task, deliveries: DesignerDeliveries, action: str) -> Task:
        return await self.update_fields(
            task,
            {"designer_deliveries": deliveries},
            action=action,
        )

    async def add_file(self, task_id: str, actor_id: str, upload: ArtifactUpload) -> Task:
        """Upload one file to the blob store, then record it on the task.

        The upload and the document write are separate calls; a failed write
        leaves an orphaned blob, which is logged and not rolled back.
        """
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "ADD_DELIVERY", UserRole.DESIGNER, UserRole.ADMIN)
        deliveries = self._require_editable(task, actor, "ADD_DELIVERY")

        url = await self.upload(upload, "deliveries", task.id)
        deliveries.files.append(DesignerDelivery(
            id=generate_id(),
            type=DeliveryType.FILE,
            name=upload.name,
            url=url,
            description=upload.description or "",
            uploaded_at=utcnow(),
            uploaded_by=actor.id,
        ))

        try:
            updated = await self._write_deliveries(task, deliveries, "ADD_DELIVERY")
        except Exception:
            logger.warning(
                "Delivery file uploaded but not recorded on task",
                task_id=task.id,
                orphaned_url=url
            )
            raise

        logger.info(
            "Delivery file added",
            task_id=task.id,
            designer_id=mask_user_id(actor.id),
            files=len(deliveries.files)
        )
        return updated

    async def add_files(self, task_id: str, actor_id: str, uploads: Sequence[ArtifactUpload]) -> Task:
        if not uploads:
            raise InputValidationError("At least one file is required", field="files")
        task = None
        for upload in uploads:
            task = await self.add_file(task_id, actor_id, upload)
        return task

    async def add_link(
        self,
        task_id: str,
        actor_id: str,
        url: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Task:
        link = normalize_url(url)
        if not link:
            raise InputValidationError("Link URL is required", field="url")

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "ADD_DELIVERY", UserRole.DESIGNER, UserRole.ADMIN)
        deliveries = self._require_editable(task, actor, "ADD_DELIVERY")

        deliveries.links.append(DesignerDelivery(
            id=generate_id(),
            type=DeliveryType.LINK,
            name=name or description or link,
            url=link,
            description=description or "",
            uploaded_at=utcnow(),
            uploaded_by=actor.id,
        ))
        return await self._write_deliveries(task, deliveries, "ADD_DELIVERY")

    async def remove_artifact(self, task_id: str, actor_id: str, delivery_id: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "REMOVE_DELIVERY", UserRole.DESIGNER, UserRole.ADMIN)
        deliveries = self._require_editable(task, actor, "REMOVE_DELIVERY")

        artifact = deliveries.find(delivery_id)
        if artifact is None:
            raise NotFoundError(
                f"Delivery not found: {delivery_id}",
                task_id=task.id,
                delivery_id=delivery_id,
            )

        items = deliveries.artifacts(artifact.type)
        items[:] = [item for item in items if item.id != delivery_id]
        logger.info(
            "Delivery artifact removed",
            task_id=task.id,
            delivery_id=delivery_id,
            delivery_type=artifact.type.value
        )
        return await self._write_deliveries(task, deliveries, "REMOVE_DELIVERY")

    async def update_notes(self, task_id: str, actor_id: str, notes: str) -> Task:
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, "UPDATE_DELIVERY_NOTES", UserRole.DESIGNER, UserRole.ADMIN)
        deliveries = self._require_editable(task, actor, "UPDATE_DELIVERY_NOTES")
        deliveries.notes = notes or ""
        return await self._write_deliveries(task, deliveries, "UPDATE_DELIVERY_NOTES")

    async def submit_for_review(self, task_id: str, actor_id: str, notes: Optional[str] = None) -> Task:
        """Submit the delivery: delivery SUBMITTED and task READY_FOR_REVIEW in one write."""
        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, TaskEvent.SUBMIT_DELIVERY, UserRole.DESIGNER, UserRole.ADMIN)
        self.require_assigned_designer(task, actor, TaskEvent.SUBMIT_DELIVERY)

        deliveries = (task.designer_deliveries or DesignerDeliveries()).model_copy(deep=True)
        if deliveries.artifact_count == 0:
            raise InputValidationError(
                "Add at least one file or link before submitting",
                task_id=task.id,
            )

        deliveries.status = DeliveryStatus.SUBMITTED
        deliveries.submitted_at = utcnow()
        if notes is not None:
            deliveries.notes = notes

        updated = await self.apply_transition(
            task,
            TaskEvent.SUBMIT_DELIVERY,
            actor,
            updates={"designer_deliveries": deliveries},
        )
        logger.info(
            "Delivery submitted for review",
            task_id=task.id,
            files=len(deliveries.files),
            links=len(deliveries.links),
            resubmission=task.status == TaskStatus.REVISION_REQUESTED
        )
        return updated

    async def review(
        self,
        task_id: str,
        actor_id: str,
        decision: DeliveryStatus,
        feedback: Optional[str] = None,
    ) -> Task:
        """
        Record a client or admin decision on the submitted delivery.

        APPROVED completes the task. REJECTED and REVISION_REQUESTED need
        feedback and send the task back to REVISION_REQUESTED so the designer
        has something to act on.
        """
        try:
            decision = DeliveryStatus(decision)
        except ValueError as e:
            raise InputValidationError(f"Unknown review decision: {decision}", field="decision") from e
        event = REVIEW_EVENTS.get(decision)
        if event is None:
            raise InputValidationError(
                f"Review decision must be APPROVED, REJECTED or REVISION_REQUESTED, got {decision.value}",
                field="decision",
            )
        if decision == DeliveryStatus.APPROVED:
            text = (feedback or "").strip()
        else:
            text = require_feedback(feedback, f"mark a delivery {decision.value}")

        task = await self.load_task(task_id)
        actor = await self.require_actor(actor_id, event, UserRole.CLIENT, UserRole.ADMIN)
        self.require_owner(task, actor, event)

        current = task.designer_deliveries
        if current is None or current.status != DeliveryStatus.SUBMITTED:
            raise IllegalTransitionError(
                "no delivery is awaiting review",
                current_status=task.status.value,
                event=event.value,
                task_id=task.id,
                delivery_status=current.status.value if current and current.status else None,
            )

        now = utcnow()
        deliveries = current.model_copy(deep=True)
        deliveries.status = decision
        deliveries.reviewed_by = actor.id
        deliveries.reviewed_at = now
        if text:
            if actor.role == UserRole.ADMIN:
                deliveries.admin_feedback = text
            else:
                deliveries.client_feedback = text
        if decision == DeliveryStatus.REVISION_REQUESTED:
            deliveries.revision_requested_at = now

        updated = await self.apply_transition(
            task,
            event,
            actor,
            updates={"designer_deliveries": deliveries, "reviewed_at": now},
        )
        logger.info(
            "Delivery reviewed",
            task_id=task.id,
            decision=decision.value,
            reviewer_role=actor.role.value,
            feedback=sanitize_feedback_text(text)
        )
        return updated
