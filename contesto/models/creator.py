from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class CreatorStatus(str, Enum):
    """Moderation state of a creator application"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CreatorApply(BaseModel):
    """Schema for applying to become a creator (email comes from the token)"""
    name: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = Field(None, alias="photoURL")
    bio: Optional[str] = Field(None, max_length=1000)

    class Config:
        populate_by_name = True


class CreatorReview(BaseModel):
    """Schema for an admin approving or rejecting an application"""
    status: CreatorStatus
