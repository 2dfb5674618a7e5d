"""Pydantic schemas for accounts, profiles and product feedback"""
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    photoURL: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    preferredRoles: Optional[List[str]] = None


class UserFeedbackCreate(BaseModel):
    type: Literal["bug", "feature", "general"]
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
