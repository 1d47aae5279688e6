from datetime import date
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Date,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

TREE_STATUSES = ("healthy", "diseased", "dead", "removed")


class Tree(BaseModel, Base):
    __tablename__ = "trees"

    # Human-facing code, e.g. TREE-000042
    tree_code = Column(String(16), nullable=False, unique=True, index=True)
    species_id = Column(String(36), ForeignKey("species.id", ondelete="RESTRICT"), nullable=False, index=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(255), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(128), nullable=True)
    country = Column(String(128), nullable=True)
    zip_code = Column(String(16), nullable=True)

    planted_date = Column(Date, nullable=True)
    height = Column(Float, nullable=True)
    diameter = Column(Float, nullable=True)
    circumference = Column(Float, nullable=True)
    canopy_spread = Column(Float, nullable=True)

    status = Column(String(16), nullable=False, default="healthy", index=True)
    health_score = Column(Integer, nullable=False, default=100)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    # soil type, sunlight exposure, water source, surroundings
    site_metadata = Column(JSON, nullable=True)

    # Back-reference only; the identity does not own its trees
    created_by = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=True, index=True)
    last_inspection_date = Column(DateTime, nullable=True)
    next_inspection_date = Column(DateTime, nullable=True)

    species = relationship("Species", back_populates="trees")
    health_records = relationship(
        "HealthRecord",
        back_populates="tree",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("health_score >= 0 AND health_score <= 100", name="ck_trees_health_score_range"),
        CheckConstraint("(height IS NULL) OR (height >= 0)", name="ck_trees_height_nonnegative"),
        CheckConstraint("(diameter IS NULL) OR (diameter >= 0)", name="ck_trees_diameter_nonnegative"),
        Index("ix_trees_lat_lng", "latitude", "longitude"),
    )

    @property
    def age(self) -> Optional[int]:
        if not self.planted_date:
            return None
        return date.today().year - self.planted_date.year
