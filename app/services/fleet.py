from __future__ import annotations

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.core.db import commit_or_raise
from app.core.errors import AssignmentConflictError, ConcurrentModificationError, NotFoundError
from app.models.fleet import ThirdPartyWrecker, TowTruck, WreckerDriver
from app.models.location import TowRequestLocation
from app.models.tow_request import ACTIVE_STATUSES, TowRequest

log = structlog.get_logger(__name__)


class FleetRegistry:
    """
    Company trucks, in-house wrecker drivers and contracted wrecker companies.

    Availability is an attribute maintained by fleet staff. Assigning a truck
    or driver to a request does not flip it; see DESIGN.md.

    Retiring removes a resource from service. One that never touched a tow
    request is deleted outright; one with tow history is only deactivated so
    the history keeps its references.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------- Tow trucks --------
    def list_trucks(self) -> list[TowTruck]:
        return self.db.query(TowTruck).order_by(TowTruck.created_at.desc()).all()

    def list_available_trucks(self) -> list[TowTruck]:
        return (
            self.db.query(TowTruck)
            .filter(TowTruck.is_available == True, TowTruck.is_active == True)  # noqa: E712
            .order_by(TowTruck.created_at.desc())
            .all()
        )

    def get_truck(self, truck_id: str) -> TowTruck:
        truck = self.db.get(TowTruck, truck_id)
        if not truck:
            raise NotFoundError(f"Tow truck {truck_id} not found")
        return truck

    def create_truck(self, **fields: Any) -> TowTruck:
        truck = TowTruck(id=str(uuid.uuid4()), **fields)
        self.db.add(truck)
        commit_or_raise(self.db)
        self.db.refresh(truck)
        log.info("tow_truck_created", truck_id=truck.id, truck_number=truck.truck_number)
        return truck

    def update_truck(self, truck_id: str, **fields: Any) -> TowTruck:
        truck = self.get_truck(truck_id)
        _apply(truck, fields)
        commit_or_raise(self.db)
        self.db.refresh(truck)
        return truck

    def retire_truck(self, truck_id: str) -> None:
        truck = self.get_truck(truck_id)
        self._refuse_if_engaged(TowRequest.assigned_truck_id == truck.id, f"Tow truck {truck.truck_number}")
        kept = self._has_history(TowRequest.assigned_truck_id == truck.id)
        if kept:
            truck.is_active = False
            truck.is_available = False
        else:
            self.db.delete(truck)
        commit_or_raise(self.db)
        log.info("tow_truck_retired", truck_id=truck_id, kept=kept)

    # -------- Wrecker drivers --------
    def list_drivers(self) -> list[WreckerDriver]:
        return self.db.query(WreckerDriver).order_by(WreckerDriver.created_at.desc()).all()

    def list_available_drivers(self) -> list[WreckerDriver]:
        return (
            self.db.query(WreckerDriver)
            .filter(WreckerDriver.is_available == True, WreckerDriver.is_active == True)  # noqa: E712
            .order_by(WreckerDriver.created_at.desc())
            .all()
        )

    def get_driver(self, driver_id: str) -> WreckerDriver:
        driver = self.db.get(WreckerDriver, driver_id)
        if not driver:
            raise NotFoundError(f"Wrecker driver {driver_id} not found")
        return driver

    def get_driver_by_user_id(self, user_id: str) -> Optional[WreckerDriver]:
        return self.db.query(WreckerDriver).filter(WreckerDriver.user_id == user_id).first()

    def create_driver(self, **fields: Any) -> WreckerDriver:
        if fields.get("assigned_truck_id"):
            self.get_truck(fields["assigned_truck_id"])
        driver = WreckerDriver(id=str(uuid.uuid4()), **fields)
        self.db.add(driver)
        commit_or_raise(self.db)
        self.db.refresh(driver)
        log.info("wrecker_driver_created", driver_id=driver.id, user_id=driver.user_id)
        return driver

    def update_driver(self, driver_id: str, **fields: Any) -> WreckerDriver:
        driver = self.get_driver(driver_id)
        if fields.get("assigned_truck_id"):
            self.get_truck(fields["assigned_truck_id"])
        _apply(driver, fields)
        commit_or_raise(self.db)
        self.db.refresh(driver)
        return driver

    def retire_driver(self, driver_id: str) -> None:
        driver = self.get_driver(driver_id)
        self._refuse_if_engaged(TowRequest.assigned_driver_id == driver.id, f"Wrecker driver {driver.id}")
        pinged = self.db.query(TowRequestLocation.id).filter(TowRequestLocation.driver_id == driver.id).first()
        kept = pinged is not None or self._has_history(TowRequest.assigned_driver_id == driver.id)
        if kept:
            driver.is_active = False
            driver.is_available = False
        else:
            self.db.delete(driver)
        commit_or_raise(self.db)
        log.info("wrecker_driver_retired", driver_id=driver_id, kept=kept)

    # -------- Third-party wreckers --------
    def list_third_party_wreckers(self) -> list[ThirdPartyWrecker]:
        return self.db.query(ThirdPartyWrecker).order_by(ThirdPartyWrecker.created_at.desc()).all()

    def list_active_third_party_wreckers(self) -> list[ThirdPartyWrecker]:
        return (
            self.db.query(ThirdPartyWrecker)
            .filter(ThirdPartyWrecker.is_active == True)  # noqa: E712
            .order_by(ThirdPartyWrecker.is_preferred.desc(), ThirdPartyWrecker.created_at.desc())
            .all()
        )

    def get_third_party_wrecker(self, wrecker_id: str) -> ThirdPartyWrecker:
        wrecker = self.db.get(ThirdPartyWrecker, wrecker_id)
        if not wrecker:
            raise NotFoundError(f"Third-party wrecker {wrecker_id} not found")
        return wrecker

    def create_third_party_wrecker(self, **fields: Any) -> ThirdPartyWrecker:
        wrecker = ThirdPartyWrecker(id=str(uuid.uuid4()), **fields)
        self.db.add(wrecker)
        commit_or_raise(self.db)
        self.db.refresh(wrecker)
        log.info("third_party_wrecker_created", wrecker_id=wrecker.id, company=wrecker.company_name)
        return wrecker

    def update_third_party_wrecker(self, wrecker_id: str, **fields: Any) -> ThirdPartyWrecker:
        wrecker = self.get_third_party_wrecker(wrecker_id)
        _apply(wrecker, fields)
        commit_or_raise(self.db)
        self.db.refresh(wrecker)
        return wrecker

    def retire_third_party_wrecker(self, wrecker_id: str) -> None:
        wrecker = self.get_third_party_wrecker(wrecker_id)
        self._refuse_if_engaged(
            TowRequest.third_party_wrecker_id == wrecker.id, f"Third-party wrecker {wrecker.company_name}"
        )
        kept = self._has_history(TowRequest.third_party_wrecker_id == wrecker.id)
        if kept:
            wrecker.is_active = False
        else:
            self.db.delete(wrecker)
        commit_or_raise(self.db)
        log.info("third_party_wrecker_retired", wrecker_id=wrecker_id, kept=kept)

    # -------- Engagement --------
    def active_requests_using(
        self,
        driver_id: str | None = None,
        truck_id: str | None = None,
        exclude_request_id: str | None = None,
    ) -> list[TowRequest]:
        clauses = []
        if driver_id:
            clauses.append(TowRequest.assigned_driver_id == driver_id)
        if truck_id:
            clauses.append(TowRequest.assigned_truck_id == truck_id)
        if not clauses:
            return []
        q = self.db.query(TowRequest).filter(TowRequest.status.in_(ACTIVE_STATUSES), or_(*clauses))
        if exclude_request_id:
            q = q.filter(TowRequest.id != exclude_request_id)
        return q.all()

    def claim_for_dispatch(self, resource, request_id: Optional[str] = None) -> None:
        """
        Compare-and-bump the resource's dispatch_version against the value
        loaded in this session. Two assignments racing for the same truck or
        driver cannot both pass. The loser matches no row and raises
        ConcurrentModificationError, so its retry sees the winner.
        """
        model = type(resource)
        result = self.db.execute(
            update(model)
            .where(model.id == resource.id, model.dispatch_version == resource.dispatch_version)
            .values(dispatch_version=model.dispatch_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            log.warning("dispatch_claim_lost", resource=model.__tablename__, resource_id=resource.id, request_id=request_id)
            raise ConcurrentModificationError(
                f"{model.__name__} {resource.id} was claimed by another assignment", request_id=request_id
            )

    def _has_history(self, clause) -> bool:
        return self.db.query(TowRequest.id).filter(clause).first() is not None

    def _refuse_if_engaged(self, clause, label: str) -> None:
        engaged = (
            self.db.query(TowRequest.request_number)
            .filter(TowRequest.status.in_(ACTIVE_STATUSES), clause)
            .first()
        )
        if engaged:
            log.warning("retire_refused", resource=label, request_number=engaged.request_number)
            raise AssignmentConflictError(f"{label} is on active tow request {engaged.request_number}")


def _apply(obj, fields: dict) -> None:
    for key, value in fields.items():
        if not hasattr(obj, key) or key == "id":
            raise ValueError(f"Unknown field: {key}")
        setattr(obj, key, value)
