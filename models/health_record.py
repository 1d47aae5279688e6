from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

HEALTH_STATUSES = ("healthy", "diseased", "pest_infestation", "dead")
SEVERITIES = ("mild", "moderate", "severe")


class HealthRecord(BaseModel, Base):
    __tablename__ = "health_records"

    tree_id = Column(String(36), ForeignKey("trees.id", ondelete="CASCADE"), nullable=False)
    inspection_date = Column(DateTime, nullable=False)
    status = Column(String(32), nullable=False, index=True)
    health_score = Column(Integer, nullable=False)

    symptoms = Column(JSON, nullable=False, default=list)
    # [{"name": ..., "severity": mild|moderate|severe}]
    diseases = Column(JSON, nullable=False, default=list)
    pests = Column(JSON, nullable=False, default=list)
    treatment = Column(JSON, nullable=True)
    measurements = Column(JSON, nullable=True)
    environmental_factors = Column(JSON, nullable=True)

    notes = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(DateTime, nullable=True)

    inspected_by = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=True, index=True)

    tree = relationship("Tree", back_populates="health_records")

    __table_args__ = (
        CheckConstraint("health_score >= 0 AND health_score <= 100", name="ck_health_score_range"),
        Index("ix_health_tree_inspection", "tree_id", "inspection_date"),
    )
