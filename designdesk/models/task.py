"""Task models."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from designdesk.models.delivery import DesignerDeliveries
from designdesk.models.enums import (
    TaskPriority,
    TaskStatus,
    TaskType,
    TERMINAL_STATUSES,
)


class UploadedFile(BaseModel):
    """Reference file attached to a brief."""
    name: str
    size: int = Field(default=0, ge=0)
    type: str = Field(default="application/octet-stream", description="MIME type")
    download_url: Optional[str] = None


class CreativeRequirements(BaseModel):
    """Structured creative brief."""
    content_type: list[str] = Field(default_factory=list)
    format: list[str] = Field(default_factory=list)
    dimensions: Optional[str] = None
    style: Optional[str] = None
    color_palette: list[str] = Field(default_factory=list)
    mood: Optional[str] = None
    brand_guidelines: Optional[str] = None
    must_include: Optional[str] = None
    do_not_use: Optional[str] = None
    file_size: Optional[str] = None
    resolution: Optional[str] = None
    references: list[str] = Field(default_factory=list, description="Reference links")
    uploaded_files: list[UploadedFile] = Field(default_factory=list)
    inspiration: Optional[str] = None


class FeedbackEntry(BaseModel):
    """One admin request-for-information cycle."""
    id: str = Field(..., description="Entry ID (ULID)")
    feedback: str = Field(..., min_length=1)
    requested_by: str = Field(..., description="Admin user ID")
    requested_at: datetime
    resolved_at: Optional[datetime] = Field(
        None,
        description="Set when the client resubmits; the only mutable field"
    )

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None


class Task(BaseModel):
    """Creative task - the central entity of the lifecycle engine."""
    id: str = Field(..., description="Task ID")
    title: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Task description")
    type: TaskType = Field(default=TaskType.OTHER)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.SUBMITTED)

    user_id: str = Field(..., description="Owning client user ID")
    brand_id: Optional[str] = Field(None, description="Client brand profile ID")
    assigned_designer: Optional[str] = Field(None, description="Designer user ID once claimed/assigned")

    requirements: CreativeRequirements = Field(default_factory=CreativeRequirements)
    budget: Optional[float] = Field(None, ge=0)
    deadline: Optional[datetime] = None

    admin_notes: str = ""
    designer_notes: str = ""
    in_design_link: Optional[str] = Field(None, description="Designer's work-in-progress link")
    admin_feedback: str = Field(default="", description="Outstanding request-for-info text")
    admin_feedback_history: list[FeedbackEntry] = Field(default_factory=list)

    pushed_to_marketplace: bool = False
    pushed_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    designer_deliveries: Optional[DesignerDeliveries] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_claimable(self) -> bool:
        """Visible in the marketplace and not yet taken."""
        return (
            self.status == TaskStatus.IN_REVIEW
            and self.pushed_to_marketplace
            and not self.assigned_designer
        )

    def open_feedback_entry(self) -> Optional[FeedbackEntry]:
        """Return the unresolved feedback entry, if any."""
        for entry in self.admin_feedback_history:
            if entry.is_open:
                return entry
        return None
