"""Test helper functions."""

import json
from typing import Dict, Any

from designdesk.models.task import Task
from designdesk.models.user import User
from designdesk.services.delivery_review import DeliveryReview
from designdesk.services.lifecycle import TaskLifecycle


def create_vercel_request(
    method: str = "POST",
    path: str = "/api/tasks/actions",
    body: Dict[str, Any] = None,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if body is None:
        body = {}

    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": {}
    }


async def submitted_task(lifecycle: TaskLifecycle, client: User, **fields) -> Task:
    return await lifecycle.create_task(client.id, fields.pop("title", "Spring campaign poster"), **fields)


async def marketplace_task(lifecycle: TaskLifecycle, client: User, admin: User) -> Task:
    task = await submitted_task(lifecycle, client)
    return await lifecycle.push_to_marketplace(task.id, admin.id)


async def task_in_progress(lifecycle: TaskLifecycle, client: User, admin: User, designer: User) -> Task:
    task = await submitted_task(lifecycle, client)
    return await lifecycle.assign_designer(task.id, admin.id, designer.id)


async def task_ready_for_review(
    lifecycle: TaskLifecycle,
    review: DeliveryReview,
    client: User,
    admin: User,
    designer: User,
) -> Task:
    task = await task_in_progress(lifecycle, client, admin, designer)
    await review.add_link(task.id, designer.id, "figma.com/file/abc", "Poster mockup")
    return await review.submit_for_review(task.id, designer.id, "First pass")
