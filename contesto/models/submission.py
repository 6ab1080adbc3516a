from pydantic import BaseModel, Field
from enum import Enum


class SubmissionStatus(str, Enum):
    """Submission outcome within a contest"""
    PENDING = "pending"  # Waiting for winner selection
    WINNER = "winner"  # Selected by the contest creator
    LOST = "lost"  # Another submission won


class SubmissionCreate(BaseModel):
    """Schema for submitting an entry"""
    contest_id: str = Field(..., alias="contestId")
    submission_value: str = Field(..., alias="submissionValue", min_length=1, max_length=5000)

    class Config:
        populate_by_name = True


class SubmissionUpdate(BaseModel):
    """Schema for editing a pending entry"""
    submission_value: str = Field(..., alias="submissionValue", min_length=1, max_length=5000)

    class Config:
        populate_by_name = True
