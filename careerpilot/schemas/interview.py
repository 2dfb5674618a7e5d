"""
Pydantic schemas for interview generation, AI feedback and suggestions.
AI replies are validated against these before anything is stored.
"""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

# Category names the evaluator must score, in display order
FEEDBACK_CATEGORIES = [
    "Communication Skills",
    "Technical Knowledge",
    "Problem-Solving",
    "Cultural & Role Fit",
    "Confidence & Clarity",
]


def _clamp_score(value: float) -> int:
    return max(0, min(100, int(round(value))))


# ========== Requests ==========
class GenerateInterviewRequest(BaseModel):
    """Body of POST /api/vapi/generate (field names match the voice agent tool call)"""
    type: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    level: str = Field(..., min_length=1)
    techstack: str = Field("", description="Comma separated, e.g. 'React, Node.js'")
    amount: int = Field(5, ge=1, le=20)
    userid: str = Field(..., min_length=1)


class TranscriptMessage(BaseModel):
    role: str
    content: str


class CreateFeedbackRequest(BaseModel):
    interview_id: str
    transcript: List[TranscriptMessage] = Field(..., min_length=1)


class InterviewFilters(BaseModel):
    type: List[str] = Field(default_factory=list)
    techstack: List[str] = Field(default_factory=list)
    level: List[str] = Field(default_factory=list)


# ========== AI structured outputs ==========
class CategoryScore(BaseModel):
    name: str
    score: int
    comment: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def clamp(cls, v):
        return _clamp_score(float(v))


class FeedbackObject(BaseModel):
    """Structured evaluation of a mock interview"""
    totalScore: int
    categoryScores: List[CategoryScore]
    strengths: List[str] = Field(default_factory=list)
    areasForImprovement: List[str] = Field(default_factory=list)
    finalAssessment: str = ""

    @field_validator("totalScore", mode="before")
    @classmethod
    def clamp_total(cls, v):
        return _clamp_score(float(v))

    @field_validator("categoryScores")
    @classmethod
    def known_categories_only(cls, v: List[CategoryScore]) -> List[CategoryScore]:
        by_name = {c.name: c for c in v}
        missing = [name for name in FEEDBACK_CATEGORIES if name not in by_name]
        if missing:
            raise ValueError(f"missing categories: {', '.join(missing)}")
        return [by_name[name] for name in FEEDBACK_CATEGORIES]


class InterviewSuggestion(BaseModel):
    role: str
    type: str
    level: str
    techstack: str
    amount: int = Field(5, ge=1, le=20)

    @field_validator("techstack", mode="before")
    @classmethod
    def join_list(cls, v):
        # Models sometimes return the stack as a list
        if isinstance(v, list):
            return ", ".join(str(t) for t in v)
        return v


class SuggestionsRequest(BaseModel):
    userId: Optional[str] = None
