from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Protocol

import structlog
from sqlalchemy.orm import Session

from app.core.errors import HandoffFailureError
from app.models.job_card import JobCard

log = structlog.get_logger(__name__)


class WorkOrderFactory(Protocol):
    def create(self, customer_id: str, vehicle_id: str, description: str, scheduled_date: datetime) -> str: ...


class JobCardFactory:
    """
    Opens a job card in the caller's session. Nothing is committed here, so
    the card lives or dies with the tow request's completion.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, customer_id: str, vehicle_id: str, description: str, scheduled_date: datetime) -> str:
        card = JobCard(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            description=description,
            scheduled_date=scheduled_date,
            status="scheduled",
        )
        self.db.add(card)
        self.db.flush()
        return card.id


def work_order_description(pickup_location: str, problem_description: Optional[str]) -> str:
    return f"Vehicle towed from {pickup_location}. {problem_description or ''}".strip()


class HandoffBridge:
    def __init__(self, factory: WorkOrderFactory):
        self.factory = factory

    def create_work_order(
        self,
        customer_id: str,
        vehicle_id: str,
        description_seed: str,
        scheduled_date: datetime,
        request_id: Optional[str] = None,
    ) -> str:
        try:
            work_order_id = self.factory.create(customer_id, vehicle_id, description_seed, scheduled_date)
        except Exception as e:
            log.warning("handoff_failed", request_id=request_id, vehicle_id=vehicle_id, error=repr(e))
            raise HandoffFailureError(f"Could not create work order: {e}", request_id=request_id) from e
        if not work_order_id:
            raise HandoffFailureError("Work-order factory returned no id", request_id=request_id)
        log.info("handoff_created", request_id=request_id, job_card_id=work_order_id)
        return work_order_id
