from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func

from app.core.clock import utcnow
from app.core.db import Base


class TowRequestEvent(Base):
    __tablename__ = "tow_request_events"

    id = Column(String, primary_key=True)  # uuid
    tow_request_id = Column(String, ForeignKey("tow_requests.id", ondelete="CASCADE"), index=True, nullable=False)
    actor_user_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)

    event_type = Column(String, nullable=False)  # CREATED, ASSIGNED, STATUS_CHANGED, COMPLETED, CANCELLED
    message = Column(Text, nullable=True)

    # set in Python: the history is ordered on this, and func.now() is only second-precise on SQLite
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
