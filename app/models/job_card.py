from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func

from app.core.db import Base


class JobCard(Base):
    """Shop work order opened for a towed-in vehicle."""

    __tablename__ = "job_cards"

    id = Column(String, primary_key=True)  # uuid
    customer_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    vehicle_id = Column(String, index=True, nullable=False)

    description = Column(Text, nullable=False)
    scheduled_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, default="scheduled", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
