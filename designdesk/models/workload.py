"""Derived workload and client overview models."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from designdesk.models.enums import ClientPriority, WorkloadStatus
from designdesk.models.user import User


class DesignerWorkload(BaseModel):
    """Workload summary for one designer."""
    designer: User
    total_tasks: int = 0
    active_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    average_completion_days: float = Field(default=0.0, description="Mean days, one decimal")
    last_activity: Optional[datetime] = None
    workload_status: WorkloadStatus = WorkloadStatus.LOW


class ClientOverview(BaseModel):
    """Task summary for one client."""
    client: User
    total_tasks: int = 0
    active_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    assigned_designer: Optional[str] = None
    last_activity: Optional[datetime] = None
    priority_level: ClientPriority = ClientPriority.LOW


class DesignerTaskStats(BaseModel):
    """Marketplace counters shown to a designer."""
    available: int = 0
    my_tasks: int = 0
    completed: int = 0
    total: int = 0
