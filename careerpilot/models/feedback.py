from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, UniqueConstraint
from datetime import datetime
from careerpilot.database import Base
import uuid

class Feedback(Base):
    """AI evaluation of a mock interview transcript (one per interview per user)"""
    __tablename__ = "feedback"
    __table_args__ = (UniqueConstraint("interview_id", "user_id", name="uq_feedback_interview_user"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    interview_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)

    total_score = Column(Integer, nullable=False, default=0)
    # [{"name": "Communication Skills", "score": 80, "comment": "..."}]
    category_scores = Column(JSON, nullable=False, default=list)
    strengths = Column(JSON, nullable=False, default=list)
    areas_for_improvement = Column(JSON, nullable=False, default=list)
    final_assessment = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "interviewId": self.interview_id,
            "userId": self.user_id,
            "totalScore": self.total_score,
            "categoryScores": self.category_scores or [],
            "strengths": self.strengths or [],
            "areasForImprovement": self.areas_for_improvement or [],
            "finalAssessment": self.final_assessment,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
