from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum


class UserRole(str, Enum):
    """Roles a stored user can hold"""
    USER = "user"
    CREATOR = "creator"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """Schema for registering a user after Firebase sign-in"""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = Field(None, alias="photoURL")

    class Config:
        populate_by_name = True


class UserUpdate(BaseModel):
    """Profile fields a user may change (email and role cannot be changed here)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    photo_url: Optional[str] = Field(None, alias="photoURL")

    class Config:
        populate_by_name = True


class UserRoleUpdate(BaseModel):
    """Schema for an admin changing a user's role"""
    role: UserRole
