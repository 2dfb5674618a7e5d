from sqlalchemy import Column, String, DateTime, Boolean, JSON
from datetime import datetime
from careerpilot.database import Base
import uuid

class Interview(Base):
    __tablename__ = "interviews"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)

    role = Column(String, nullable=False)
    type = Column(String, nullable=False, index=True)
    level = Column(String, nullable=False, index=True)
    techstack = Column(JSON, nullable=False, default=list)
    questions = Column(JSON, nullable=False, default=list)

    finalized = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self, feedback=None):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "role": self.role,
            "type": self.type,
            "level": self.level,
            "techstack": self.techstack or [],
            "questions": self.questions or [],
            "finalized": bool(self.finalized),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completed": feedback is not None,
            "feedback": feedback.to_dict() if feedback is not None else None,
        }
        return data
