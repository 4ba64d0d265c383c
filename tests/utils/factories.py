"""Test data factories using Faker."""

from faker import Faker
from typing import Optional
from datetime import datetime, timedelta, timezone

from designdesk.models.delivery import ArtifactUpload, DesignerDeliveries, DesignerDelivery
from designdesk.models.enums import DeliveryType, TaskStatus, TaskType, UserRole
from designdesk.models.task import Task
from designdesk.models.user import User
from designdesk.utils.ids import generate_id

fake = Faker()


def create_user_data(role: UserRole = UserRole.CLIENT, user_id: Optional[str] = None) -> dict:
    """Create test user data."""
    return {
        "id": user_id or generate_id(),
        "email": fake.email(),
        "name": fake.name(),
        "role": role,
        "is_active": True,
    }


def make_user(role: UserRole = UserRole.CLIENT, **overrides) -> User:
    return User(**{**create_user_data(role), **overrides})


def create_task_data(
    user_id: Optional[str] = None,
    status: TaskStatus = TaskStatus.SUBMITTED,
    created_at: Optional[datetime] = None,
) -> dict:
    """Create test task data."""
    created = created_at or datetime.now(timezone.utc) - timedelta(days=fake.random_int(min=1, max=30))
    return {
        "id": generate_id(),
        "title": fake.sentence(nb_words=4),
        "description": fake.text(),
        "type": fake.random_element(list(TaskType)),
        "status": status,
        "user_id": user_id or generate_id(),
        "brand_id": generate_id(),
        "created_at": created,
        "updated_at": created,
    }


def make_task(
    user_id: Optional[str] = None,
    status: TaskStatus = TaskStatus.SUBMITTED,
    **overrides,
) -> Task:
    """Build a task; marketplace and assignment fields follow from ``status``."""
    data = create_task_data(user_id=user_id, status=status)
    if status == TaskStatus.IN_REVIEW:
        data["pushed_to_marketplace"] = True
        data["pushed_at"] = data["created_at"]
    data.update(overrides)
    return Task(**data)


def make_upload(name: Optional[str] = None, size: int = 64) -> ArtifactUpload:
    return ArtifactUpload(
        name=name or fake.file_name(extension="png"),
        data=fake.binary(length=size),
        content_type="image/png",
    )


def make_link(designer_id: str, url: Optional[str] = None) -> DesignerDelivery:
    return DesignerDelivery(
        id=generate_id(),
        type=DeliveryType.LINK,
        name=fake.word(),
        url=url or fake.url(),
        uploaded_at=datetime.now(timezone.utc),
        uploaded_by=designer_id,
    )


def make_deliveries(designer_id: str, **overrides) -> DesignerDeliveries:
    return DesignerDeliveries(links=[make_link(designer_id)], **overrides)
