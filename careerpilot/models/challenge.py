from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey
from datetime import datetime
from careerpilot.database import Base
import uuid

CHALLENGE_STATUSES = ("not_started", "in_progress", "completed")
CHALLENGE_DIFFICULTIES = ("beginner", "intermediate", "advanced")


class TechnicalChallenge(Base):
    __tablename__ = "technical_challenges"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    difficulty = Column(String(20), nullable=False, index=True)
    tech_stack = Column(JSON, nullable=False, default=list)
    estimated_time = Column(Integer)  # minutes
    points = Column(Integer)

    # not_started → in_progress → completed
    status = Column(String(20), nullable=False, default="not_started", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)

    def to_dict(self, submissions=None):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty,
            "techStack": self.tech_stack or [],
            "estimatedTime": self.estimated_time,
            "points": self.points,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
        if submissions is not None:
            data["submissions"] = [s.to_dict() for s in submissions]
        return data


class ChallengeSubmission(Base):
    __tablename__ = "challenge_submissions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    challenge_id = Column(String(36), ForeignKey("technical_challenges.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    solution = Column(Text, nullable=False)
    # {"score": int, "strengths": [...], "improvements": [...], "suggestions": [...]}
    feedback = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False)

    submitted_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "challengeId": self.challenge_id,
            "userId": self.user_id,
            "solution": self.solution,
            "feedback": self.feedback or {},
            "status": self.status,
            "submittedAt": self.submitted_at.isoformat() if self.submitted_at else None,
        }
