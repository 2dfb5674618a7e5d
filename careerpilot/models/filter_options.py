from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime
from careerpilot.database import Base

FILTER_OPTIONS_ID = "options"


class FilterOptions(Base):
    """Facets (types, tech stacks, levels) used by interview search filters"""
    __tablename__ = "filter_options"

    id = Column(String(20), primary_key=True, default=FILTER_OPTIONS_ID)
    types = Column(JSON, nullable=False, default=list)
    techstacks = Column(JSON, nullable=False, default=list)
    levels = Column(JSON, nullable=False, default=list)
    total_interviews = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "type": [{"value": v, "label": v} for v in self.types or []],
            "techstack": [{"value": v, "label": v} for v in self.techstacks or []],
            "level": [{"value": v, "label": v} for v in self.levels or []],
            "totalInterviews": self.total_interviews,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }
