"""Designer delivery models - artifacts nested under a task."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from designdesk.models.enums import DeliveryStatus, DeliveryType


class DesignerDelivery(BaseModel):
    """A single delivered artifact (uploaded file or external link)."""
    id: str = Field(..., description="Time-ordered artifact ID (ULID)")
    type: DeliveryType = Field(..., description="FILE or LINK; selects the list it lives in")
    name: str = Field(..., description="Display name")
    url: str = Field(..., description="Storage URL or external link")
    description: Optional[str] = Field(None, description="Designer's description")
    uploaded_at: datetime = Field(..., description="Upload time")
    uploaded_by: str = Field(..., description="Designer user ID")


class ArtifactUpload(BaseModel):
    """Raw file handed in for upload to the blob store."""
    name: str = Field(..., min_length=1)
    data: bytes
    content_type: str = "application/octet-stream"
    description: Optional[str] = None


class DesignerDeliveries(BaseModel):
    """Delivery collection and its review state."""
    files: list[DesignerDelivery] = Field(default_factory=list)
    links: list[DesignerDelivery] = Field(default_factory=list)
    notes: str = Field(default="", description="Designer's submission notes")
    status: Optional[DeliveryStatus] = Field(
        None,
        description="Review status; absent until first submission"
    )
    submitted_at: Optional[datetime] = None
    client_feedback: Optional[str] = None
    admin_feedback: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    revision_requested_at: Optional[datetime] = None

    def artifacts(self, delivery_type: DeliveryType) -> list[DesignerDelivery]:
        """Return the list holding artifacts of the given type."""
        if delivery_type == DeliveryType.FILE:
            return self.files
        return self.links

    def find(self, delivery_id: str) -> Optional[DesignerDelivery]:
        for item in self.files + self.links:
            if item.id == delivery_id:
                return item
        return None

    @property
    def artifact_count(self) -> int:
        return len(self.files) + len(self.links)

    @property
    def is_locked(self) -> bool:
        """Approved deliveries are immutable history."""
        return self.status == DeliveryStatus.APPROVED
