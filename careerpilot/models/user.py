from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, JSON
from datetime import datetime
from careerpilot.database import Base
import secrets
import uuid
import bcrypt

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    # Profile
    photo_url = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    experience = Column(String, nullable=True)
    preferred_roles = Column(JSON, nullable=False, default=list)

    # Gamification: badges are [{"id": "badge-1", "earnedAt": "..."}]
    badges = Column(JSON, nullable=False, default=list)
    experience_points = Column(Integer, nullable=False, default=0, index=True)

    # Optimistic concurrency for XP updates
    version = Column(Integer, nullable=False, default=1)

    # API key authentication (bcrypt hash + prefix for O(1) lookup)
    api_key = Column(String, unique=True, nullable=True)
    api_key_prefix = Column(String(8), nullable=True, index=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime)

    __mapper_args__ = {"version_id_col": version}

    @staticmethod
    def hash_api_key(api_key: str) -> str:
        """Hash an API key using bcrypt"""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(api_key.encode('utf-8'), salt)
        return hashed.decode('utf-8')

    @staticmethod
    def get_key_prefix(api_key: str) -> str:
        """Return first 8 chars of plaintext key for O(1) lookup"""
        return api_key[:8]

    @staticmethod
    def verify_api_key(api_key: str, hashed_key: str) -> bool:
        """Verify an API key against its hash"""
        try:
            return bcrypt.checkpw(api_key.encode('utf-8'), hashed_key.encode('utf-8'))
        except ValueError:
            return False

    def set_new_api_key(self) -> str:
        """Replace the stored key; returns the plaintext once."""
        plaintext_key = secrets.token_urlsafe(32)
        self.api_key = self.hash_api_key(plaintext_key)
        self.api_key_prefix = self.get_key_prefix(plaintext_key)
        return plaintext_key

    @classmethod
    def create_user(cls, email: str, name: str):
        """Factory method to create user with hashed API key"""
        user = cls(email=email, name=name, skills=[], preferred_roles=[], badges=[], experience_points=0)
        # Attach plaintext key for one-time return (not stored)
        user._plaintext_api_key = user.set_new_api_key()
        return user

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "photoURL": self.photo_url,
            "bio": self.bio,
            "location": self.location,
            "skills": self.skills or [],
            "experience": self.experience or "",
            "preferredRoles": self.preferred_roles or [],
            "badges": self.badges or [],
            "experiencePoints": self.experience_points or 0,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
