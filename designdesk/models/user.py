"""User and brand models."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from designdesk.models.enums import BrandSize, UserRole


class User(BaseModel):
    """Platform user - client, designer or admin."""
    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(default=UserRole.CLIENT)
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Brand(BaseModel):
    """Client brand profile."""
    id: str = Field(..., description="Brand ID")
    name: str = Field(..., min_length=1)
    size: BrandSize = Field(default=BrandSize.SMALL)
    user_id: str = Field(..., description="Owning client user ID")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
