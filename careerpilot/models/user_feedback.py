from sqlalchemy import Column, String, DateTime, Text
from datetime import datetime
from careerpilot.database import Base
import uuid

FEEDBACK_TYPES = ("bug", "feature", "general")
FEEDBACK_STATUSES = ("open", "in-progress", "resolved")


class UserFeedback(Base):
    """Product feedback submitted by users (bug reports, feature requests)"""
    __tablename__ = "user_feedback"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="open")
    user_email = Column(String, nullable=True)
    user_display_name = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "userEmail": self.user_email,
            "userDisplayName": self.user_display_name,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
