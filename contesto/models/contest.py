from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from enum import Enum


class ContestStatus(str, Enum):
    """
    Moderation state, set by an admin.

    - PENDING -> APPROVED (admin approves, contest opens)
    - PENDING -> REJECTED (admin rejects)
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContestLifecycle(str, Enum):
    """
    Operational state, stored as ``contestStatus``.

    Absent until the contest is approved. Only OPEN -> COMPLETED is allowed.
    """
    OPEN = "open"
    COMPLETED = "completed"


class ContestCreate(BaseModel):
    """Schema for a creator submitting a contest"""
    name: str = Field(..., min_length=3, max_length=200)
    image: Optional[str] = None
    description: str = Field(..., min_length=10)
    category: str = Field(..., min_length=2, max_length=50)
    prize_money: float = Field(..., ge=0)
    entry_fee: float = Field(..., gt=0)
    task_instruction: str = Field(..., min_length=10)
    participation_end_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ContestUpdate(BaseModel):
    """Schema for a creator editing a contest (only while pending)"""
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    image: Optional[str] = None
    description: Optional[str] = Field(None, min_length=10)
    category: Optional[str] = Field(None, min_length=2, max_length=50)
    prize_money: Optional[float] = Field(None, ge=0)
    entry_fee: Optional[float] = Field(None, gt=0)
    task_instruction: Optional[str] = Field(None, min_length=10)
    participation_end_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ContestModeration(BaseModel):
    """Schema for an admin moderating a contest"""
    status: ContestStatus
