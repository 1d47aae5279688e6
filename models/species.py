from sqlalchemy import Column, String, Text, Boolean, JSON, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

CONSERVATION_STATUSES = ("LC", "NT", "VU", "EN", "CR", "EW", "EX")


class Species(BaseModel, Base):
    __tablename__ = "species"

    common_name = Column(String(255), nullable=False)
    # Binomial name; uniqueness enforced here
    scientific_name = Column(String(255), nullable=False, unique=True, index=True)
    family = Column(String(128), nullable=True)
    genus = Column(String(128), nullable=True)
    native_region = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # Nested documents: growth rate, leaf type, sunlight, water needs, ...
    characteristics = Column(JSON, nullable=True)
    cultivation_requirements = Column(JSON, nullable=True)
    benefits = Column(JSON, nullable=True)
    images = Column(JSON, nullable=True, default=list)

    is_endangered = Column(Boolean, nullable=False, default=False)
    conservation_status = Column(String(2), nullable=False, default="LC")

    trees = relationship("Tree", back_populates="species")

    __table_args__ = (
        Index("ix_species_common_name", "common_name"),
    )
