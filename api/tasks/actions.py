"""Task action endpoint - dispatches lifecycle and delivery actions for Vercel."""

import asyncio
import base64
import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from designdesk.models.delivery import ArtifactUpload
from designdesk.models.enums import DeliveryStatus, TaskPriority, TaskType
from designdesk.models.task import CreativeRequirements
from designdesk.services.blob_store import SupabaseBlobStore
from designdesk.services.delivery_review import DeliveryReview
from designdesk.services.lifecycle import TaskLifecycle, check_brief_fields
from designdesk.services.task_store import SupabaseTaskStore
from designdesk.services.user_directory import SupabaseUserDirectory
from designdesk.utils.config import StoreConfig
from designdesk.utils.errors import (
    DesignDeskError,
    IllegalTransitionError,
    InputValidationError,
    NotFoundError,
    StoreError,
)
from designdesk.utils.logging import correlation_context, get_structured_logger, setup_logging
from designdesk.utils.logging_config import LoggingConfig

setup_logging()
logger = get_structured_logger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    IllegalTransitionError: 409,
    InputValidationError: 422,
    StoreError: 502,
}


def build_engines() -> tuple[TaskLifecycle, DeliveryReview]:
    """Wire engines to the Supabase-backed collaborators."""
    store = SupabaseTaskStore()
    users = SupabaseUserDirectory()
    references = SupabaseBlobStore(StoreConfig.REFERENCE_BUCKET)
    deliveries = SupabaseBlobStore(StoreConfig.DELIVERY_BUCKET)
    return TaskLifecycle(store, users, references), DeliveryReview(store, users, deliveries)


def _uploads(items: Optional[list[dict]]) -> list[ArtifactUpload]:
    """Decode base64 file payloads."""
    return [
        ArtifactUpload(
            name=item["name"],
            data=base64.b64decode(item.get("data", "")),
            content_type=item.get("content_type", "application/octet-stream"),
            description=item.get("description"),
        )
        for item in (items or [])
    ]


def _deadline(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _changes(body: dict) -> dict[str, Any]:
    """Brief edits, checked before they become keyword arguments."""
    changes = body.get("changes") or {}
    if not isinstance(changes, dict):
        raise InputValidationError("changes must be an object", field="changes")
    check_brief_fields(changes)
    return changes


ACTIONS: dict[str, Callable[[TaskLifecycle, DeliveryReview, dict], Any]] = {
    "create": lambda lc, dr, b: lc.create_task(
        b["actor_id"],
        b.get("title", ""),
        description=b.get("description", ""),
        type=TaskType(b.get("type", TaskType.OTHER.value)),
        priority=TaskPriority(b.get("priority", TaskPriority.MEDIUM.value)),
        requirements=CreativeRequirements.model_validate(b.get("requirements") or {}),
        deadline=_deadline(b.get("deadline")),
        budget=b.get("budget"),
        client_id=b.get("client_id"),
        brand_name=b.get("brand_name"),
        reference_files=_uploads(b.get("files")),
        draft=bool(b.get("draft")),
    ),
    "submit_draft": lambda lc, dr, b: lc.submit_draft(b["task_id"], b["actor_id"]),
    "update_brief": lambda lc, dr, b: lc.update_brief(b["task_id"], b["actor_id"], **_changes(b)),
    "delete": lambda lc, dr, b: lc.delete_task(b["task_id"], b["actor_id"]),
    "push": lambda lc, dr, b: lc.push_to_marketplace(b["task_id"], b["actor_id"]),
    "assign": lambda lc, dr, b: lc.assign_designer(b["task_id"], b["actor_id"], b.get("designer_id", "")),
    "request_info": lambda lc, dr, b: lc.request_info(b["task_id"], b["actor_id"], b.get("feedback", "")),
    "resubmit": lambda lc, dr, b: lc.resubmit(b["task_id"], b["actor_id"], **_changes(b)),
    "claim": lambda lc, dr, b: lc.claim(b["task_id"], b["actor_id"]),
    "approve": lambda lc, dr, b: lc.approve_for_client(b["task_id"], b["actor_id"]),
    "cancel": lambda lc, dr, b: lc.cancel(b["task_id"], b["actor_id"]),
    "admin_notes": lambda lc, dr, b: lc.update_admin_notes(b["task_id"], b["actor_id"], b.get("notes", "")),
    "designer_notes": lambda lc, dr, b: lc.update_designer_notes(b["task_id"], b["actor_id"], b.get("notes", "")),
    "in_design_link": lambda lc, dr, b: lc.set_in_design_link(b["task_id"], b["actor_id"], b.get("url", "")),
    "add_files": lambda lc, dr, b: dr.add_files(b["task_id"], b["actor_id"], _uploads(b.get("files"))),
    "add_link": lambda lc, dr, b: dr.add_link(
        b["task_id"], b["actor_id"], b.get("url", ""), b.get("name"), b.get("description")
    ),
    "remove_delivery": lambda lc, dr, b: dr.remove_artifact(b["task_id"], b["actor_id"], b.get("delivery_id", "")),
    "delivery_notes": lambda lc, dr, b: dr.update_notes(b["task_id"], b["actor_id"], b.get("notes", "")),
    "submit_delivery": lambda lc, dr, b: dr.submit_for_review(b["task_id"], b["actor_id"], b.get("notes")),
    "review": lambda lc, dr, b: dr.review(
        b["task_id"], b["actor_id"], DeliveryStatus(b.get("decision", "")), b.get("feedback")
    ),
}


def _response(status: int, payload: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def _status_for(error: DesignDeskError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


async def dispatch(body: dict, engines: Optional[tuple[TaskLifecycle, DeliveryReview]] = None) -> Any:
    action = body.get("action")
    if action not in ACTIONS:
        raise InputValidationError(f"Unknown action: {action}", field="action")
    for field in ("actor_id",) if action == "create" else ("actor_id", "task_id"):
        if not body.get(field):
            raise InputValidationError(f"{field} is required", field=field)

    lifecycle, review = engines or build_engines()
    return await ACTIONS[action](lifecycle, review, body)


def handler(request, engines: Optional[tuple[TaskLifecycle, DeliveryReview]] = None):
    """Run one task action and report the updated task or a typed error."""
    headers = request.get("headers", {}) or {}
    correlation_id = headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER) or headers.get(
        LoggingConfig.LOG_CORRELATION_ID_HEADER.lower()
    )

    with correlation_context(correlation_id) as cid:
        try:
            raw = request.get("body") or "{}"
            body = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError:
            return _response(400, {"error": "invalid JSON body"})

        try:
            result = asyncio.run(dispatch(body, engines))
        except DesignDeskError as e:
            logger.warning(
                "Task action rejected",
                action=body.get("action"),
                task_id=body.get("task_id"),
                error_type=type(e).__name__,
                error=e.message
            )
            return _response(_status_for(e), {**e.to_dict(), "correlation_id": cid})
        except (KeyError, ValueError) as e:
            return _response(422, {"error": "InputValidationError", "message": str(e), "correlation_id": cid})
        except Exception as e:
            logging.getLogger(__name__).error(f"Error processing task action: {e}", exc_info=True)
            return _response(500, {"error": "internal server error", "correlation_id": cid})

        payload = {"ok": True, "correlation_id": cid}
        if result is not None:
            payload["task"] = result.model_dump(mode="json")
        return _response(200, payload)
