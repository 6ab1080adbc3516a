from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    """Schema for starting a paid checkout to join a contest"""
    contest_id: str = Field(..., alias="contestId")

    class Config:
        populate_by_name = True
