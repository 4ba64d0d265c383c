"""Closed enumerations shared by the task and delivery models."""

from enum import Enum


class UserRole(str, Enum):
    """Actor roles."""
    CLIENT = "CLIENT"
    DESIGNER = "DESIGNER"
    ADMIN = "ADMIN"


class TaskType(str, Enum):
    """Kind of creative work requested."""
    STATIC_DESIGN = "STATIC_DESIGN"
    VIDEO_PRODUCTION = "VIDEO_PRODUCTION"
    ANIMATION = "ANIMATION"
    ILLUSTRATION = "ILLUSTRATION"
    BRANDING = "BRANDING"
    WEB_DESIGN = "WEB_DESIGN"
    OTHER = "OTHER"


class TaskPriority(str, Enum):
    """Client-declared priority."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class TaskStatus(str, Enum):
    """Task lifecycle states."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    IN_PROGRESS = "IN_PROGRESS"
    READY_FOR_REVIEW = "READY_FOR_REVIEW"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    INFO_REQUESTED = "INFO_REQUESTED"
    APPROVED = "APPROVED"


class TaskEvent(str, Enum):
    """Actions that move a task between states."""
    SUBMIT_DRAFT = "SUBMIT_DRAFT"
    PUSH_TO_MARKETPLACE = "PUSH_TO_MARKETPLACE"
    ASSIGN = "ASSIGN"
    REQUEST_INFO = "REQUEST_INFO"
    RESUBMIT = "RESUBMIT"
    CLAIM = "CLAIM"
    SUBMIT_DELIVERY = "SUBMIT_DELIVERY"
    ADMIN_APPROVE = "ADMIN_APPROVE"
    REQUEST_REVISION = "REQUEST_REVISION"
    REJECT_DELIVERY = "REJECT_DELIVERY"
    APPROVE_DELIVERY = "APPROVE_DELIVERY"
    CANCEL = "CANCEL"


class DeliveryType(str, Enum):
    """Delivery artifact kind."""
    FILE = "FILE"
    LINK = "LINK"


class DeliveryStatus(str, Enum):
    """Review state of a designer's delivery."""
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class BrandSize(str, Enum):
    """Brand size bracket."""
    STARTUP = "STARTUP"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"


class WorkloadStatus(str, Enum):
    """Designer load classification."""
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    OVERLOADED = "OVERLOADED"


class ClientPriority(str, Enum):
    """Client attention level."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


ACTIVE_STATUSES = frozenset({
    TaskStatus.SUBMITTED,
    TaskStatus.IN_REVIEW,
    TaskStatus.IN_PROGRESS,
    TaskStatus.READY_FOR_REVIEW,
    TaskStatus.REVISION_REQUESTED,
})

TERMINAL_STATUSES = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
})
