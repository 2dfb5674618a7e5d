"""Pydantic schemas for AI-generated technical challenges and solution reviews"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


class GeneratedChallenge(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    difficulty: Literal["beginner", "intermediate", "advanced"]
    techStack: List[str] = Field(default_factory=list)
    estimatedTime: int = Field(30, ge=1)
    points: int = 50

    @field_validator("difficulty", mode="before")
    @classmethod
    def lower(cls, v):
        return str(v).strip().lower()

    @field_validator("points")
    @classmethod
    def clamp_points(cls, v: int) -> int:
        return max(10, min(100, v))


class SolutionReview(BaseModel):
    score: int
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        return max(0, min(100, int(round(float(v)))))


class ChallengeProfile(BaseModel):
    skills: List[str] = Field(default_factory=list)
    experience: str = ""
    preferredRoles: List[str] = Field(default_factory=list)


class GenerateChallengeRequest(BaseModel):
    userData: Optional[ChallengeProfile] = None


class SubmitSolutionRequest(BaseModel):
    solution: str = Field(..., min_length=1)


class ExecuteCodeRequest(BaseModel):
    code: str
    language: str = "python"
