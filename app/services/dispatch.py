"""
Tow request dispatch.

DispatchCoordinator owns the request lifecycle: it creates requests, assigns
wreckers, applies status changes through the transition table, and completes
requests with an optional job-card handoff. Every write is conditioned on the
row version, and a lost race is retried after reloading the request.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

import structlog
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.db import commit_or_raise
from app.core.errors import (
    AssignmentConflictError,
    ConcurrentModificationError,
    HandoffFailureError,
    InvalidTransitionError,
    NotFoundError,
)
from app.models.event import TowRequestEvent
from app.models.fleet import WreckerDriver
from app.models.tow_request import ACTIVE_STATUSES, TowRequest, TowStatus, WreckerType
from app.models.user import User
from app.services import state_machine
from app.services.fleet import FleetRegistry
from app.services.handoff import HandoffBridge, JobCardFactory, WorkOrderFactory, work_order_description
from app.services.notifications import NotificationRelay, build_tow_notification, notify_best_effort
from app.services.pricing import PricingZoneCatalog
from app.services.sequence import SequenceAllocator

log = structlog.get_logger(__name__)

T = TypeVar("T")

# Optional descriptive fields accepted on creation
REQUEST_DETAIL_FIELDS = frozenset(
    {
        "vehicle_make",
        "vehicle_model",
        "vehicle_year",
        "vehicle_color",
        "license_plate",
        "vehicle_size",
        "pickup_latitude",
        "pickup_longitude",
        "dropoff_latitude",
        "dropoff_longitude",
        "urgency",
        "service_type",
        "special_instructions",
        "pricing_zone_id",
        "estimated_distance",
        "estimated_arrival",
    }
)

# status -> customer notification kind
_STATUS_NOTIFICATIONS = {
    TowStatus.EN_ROUTE: "en_route",
    TowStatus.CANCELLED: "cancelled",
}


def _log_event(db: Session, tow_request_id: str, actor: Optional[User], event_type: str, message: str | None = None):
    ev = TowRequestEvent(
        id=str(uuid.uuid4()),
        tow_request_id=tow_request_id,
        actor_user_id=actor.id if actor else None,
        event_type=event_type,
        message=message,
    )
    db.add(ev)


def _append_note(existing: Optional[str], note: str, actor: Optional[User]) -> str:
    existing = (existing or "").strip()
    prefix = f"[{actor.role.value}] " if actor else ""
    line = f"{prefix}{note.strip()}"
    return f"{existing}\n{line}".strip() if existing else line


class DispatchCoordinator:
    def __init__(
        self,
        db: Session,
        relay: Optional[NotificationRelay] = None,
        work_orders: Optional[WorkOrderFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.relay = relay
        self.fleet = FleetRegistry(db)
        self.sequence = SequenceAllocator(db)
        self.handoff = HandoffBridge(work_orders or JobCardFactory(db))
        self._now = clock or utcnow

    # -------- Queries --------
    def get_request(self, request_id: str) -> TowRequest:
        req = self.db.get(TowRequest, request_id)
        if not req:
            raise NotFoundError(f"Tow request {request_id} not found", request_id=request_id)
        return req

    def get_request_by_number(self, request_number: str) -> TowRequest:
        req = self.db.query(TowRequest).filter(TowRequest.request_number == request_number).first()
        if not req:
            raise NotFoundError(f"Tow request {request_number} not found")
        return req

    def list_requests(self, customer_id: Optional[str] = None, status: Optional[TowStatus] = None) -> list[TowRequest]:
        q = self.db.query(TowRequest)
        if customer_id:
            q = q.filter(TowRequest.customer_id == customer_id)
        if status:
            q = q.filter(TowRequest.status == TowStatus(status))
        return q.order_by(TowRequest.requested_at.desc()).all()

    def list_requests_for_driver(self, driver_id: str) -> list[TowRequest]:
        return (
            self.db.query(TowRequest)
            .filter(TowRequest.assigned_driver_id == driver_id)
            .order_by(TowRequest.requested_at.desc())
            .all()
        )

    def list_active_requests(self) -> list[TowRequest]:
        return (
            self.db.query(TowRequest)
            .filter(TowRequest.status.in_(ACTIVE_STATUSES))
            .order_by(TowRequest.requested_at.desc())
            .all()
        )

    def list_events(self, request_id: str) -> list[TowRequestEvent]:
        self.get_request(request_id)
        return (
            self.db.query(TowRequestEvent)
            .filter(TowRequestEvent.tow_request_id == request_id)
            .order_by(TowRequestEvent.created_at.asc())
            .all()
        )

    # -------- Creation --------
    def generate_request_number(self) -> str:
        """Allocate the next number for the current year in the open transaction."""
        return self.sequence.allocate(self._now().year)

    def create_request(
        self,
        customer_id: str,
        pickup_location: str,
        dropoff_location: str,
        vehicle_id: Optional[str] = None,
        problem_description: Optional[str] = None,
        actor: Optional[User] = None,
        **details: Any,
    ) -> TowRequest:
        unknown = set(details) - REQUEST_DETAIL_FIELDS
        if unknown:
            raise ValueError(f"Unknown tow request fields: {sorted(unknown)}")

        pickup = (pickup_location or "").strip()
        dropoff = (dropoff_location or "").strip()
        if not pickup or not dropoff:
            raise ValueError("pickup_location and dropoff_location are required")

        if not self.db.get(User, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
        if details.get("pricing_zone_id"):
            PricingZoneCatalog(self.db).get_zone(details["pricing_zone_id"])

        details = {k: v for k, v in details.items() if v is not None}

        now = self._now()
        request_number = self.generate_request_number()
        req = TowRequest(
            id=str(uuid.uuid4()),
            request_number=request_number,
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            pickup_location=pickup,
            dropoff_location=dropoff,
            problem_description=problem_description,
            status=TowStatus.PENDING,
            requested_at=now,
            **details,
        )
        self.db.add(req)
        # no relationship() orders the inserts, so the request row must exist before its event
        self.db.flush()
        _log_event(self.db, req.id, actor, "CREATED", f"Tow request {request_number} created, pickup at {pickup}")
        commit_or_raise(self.db, req.id)
        self.db.refresh(req)

        log.info("tow_request_created", request_id=req.id, request_number=request_number, customer_id=customer_id)
        return req

    # -------- Assignment --------
    def assign(
        self,
        request_id: str,
        driver_id: Optional[str] = None,
        truck_id: Optional[str] = None,
        third_party_wrecker_id: Optional[str] = None,
        wrecker_type: Optional[WreckerType] = None,
        estimated_arrival: Optional[datetime] = None,
        actor: Optional[User] = None,
    ) -> TowRequest:
        kind = self._resolve_wrecker_type(request_id, driver_id, truck_id, third_party_wrecker_id, wrecker_type)

        def apply():
            req = self.get_request(request_id)
            self._check(req, TowStatus.DISPATCHED, state_machine.ASSIGN)

            driver = truck = wrecker = None
            if kind == WreckerType.THIRD_PARTY:
                wrecker = self.fleet.get_third_party_wrecker(third_party_wrecker_id)
                if not wrecker.is_active:
                    raise AssignmentConflictError(
                        f"Third-party wrecker {wrecker.company_name} is not active", request_id=req.id
                    )
            else:
                if driver_id:
                    driver = self.fleet.get_driver(driver_id)
                    if not driver.is_active:
                        raise AssignmentConflictError(f"Wrecker driver {driver.id} is not active", request_id=req.id)
                resolved_truck_id = truck_id or (driver.assigned_truck_id if driver else None)
                if not resolved_truck_id:
                    raise AssignmentConflictError(
                        "A company-owned assignment needs a truck; the driver has no default truck",
                        request_id=req.id,
                    )
                truck = self.fleet.get_truck(resolved_truck_id)
                if not truck.is_active:
                    raise AssignmentConflictError(f"Tow truck {truck.truck_number} is retired", request_id=req.id)
                self._ensure_not_engaged(req, driver, truck.id)

            dispatched_at = self._now()
            # the engagement check above is only a read; the claim makes it stick
            for resource in (truck, driver):
                if resource is not None:
                    self.fleet.claim_for_dispatch(resource, request_id=req.id)

            req.wrecker_type = kind
            req.assigned_driver_id = driver.id if driver else None
            req.assigned_truck_id = truck.id if truck else None
            req.third_party_wrecker_id = wrecker.id if wrecker else None
            req.status = TowStatus.DISPATCHED
            req.dispatched_at = dispatched_at
            if estimated_arrival is not None:
                req.estimated_arrival = estimated_arrival

            if wrecker:
                message = f"Assigned to third-party wrecker {wrecker.company_name}"
            else:
                message = f"Assigned truck {truck.truck_number}" + (f" with driver {driver.id}" if driver else "")
            _log_event(self.db, req.id, actor, "ASSIGNED", message)
            commit_or_raise(self.db, req.id)
            self.db.refresh(req)
            return req, driver

        req, driver = self._with_retry(request_id, apply)
        log.info(
            "tow_request_assigned",
            request_id=req.id,
            request_number=req.request_number,
            wrecker_type=kind.value,
            driver_id=req.assigned_driver_id,
            truck_id=req.assigned_truck_id,
            third_party_wrecker_id=req.third_party_wrecker_id,
        )

        payload = build_tow_notification(
            "assigned", driver_name=self._driver_name(driver), request_number=req.request_number
        )
        notify_best_effort(self.relay, self.db.get(User, req.customer_id), payload)
        return req

    def _resolve_wrecker_type(self, request_id, driver_id, truck_id, third_party_wrecker_id, wrecker_type) -> WreckerType:
        if not (driver_id or truck_id or third_party_wrecker_id):
            raise AssignmentConflictError("Provide a driver, a truck or a third-party wrecker", request_id=request_id)
        if third_party_wrecker_id and (driver_id or truck_id):
            raise AssignmentConflictError(
                "A request goes to a company truck or a third-party wrecker, not both", request_id=request_id
            )

        inferred = WreckerType.THIRD_PARTY if third_party_wrecker_id else WreckerType.COMPANY_OWNED
        if wrecker_type is not None and WreckerType(wrecker_type) != inferred:
            raise AssignmentConflictError(
                f"wrecker_type {WreckerType(wrecker_type).value} does not match the resources given",
                request_id=request_id,
            )
        return inferred

    def _ensure_not_engaged(self, req: TowRequest, driver: Optional[WreckerDriver], truck_id: str) -> None:
        busy = self.fleet.active_requests_using(
            driver_id=driver.id if driver else None,
            truck_id=truck_id,
            exclude_request_id=req.id,
        )
        if busy:
            other = busy[0]
            log.warning(
                "assignment_conflict",
                request_id=req.id,
                other_request_number=other.request_number,
                driver_id=driver.id if driver else None,
                truck_id=truck_id,
            )
            raise AssignmentConflictError(
                f"Resource already assigned to active tow request {other.request_number}", request_id=req.id
            )

    def _driver_name(self, driver: Optional[WreckerDriver]) -> Optional[str]:
        if not driver:
            return None
        user = self.db.get(User, driver.user_id)
        return user.display_name if user else None

    # -------- Status updates --------
    def update_status(
        self,
        request_id: str,
        new_status: TowStatus,
        estimated_arrival: Optional[datetime] = None,
        notes: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> TowRequest:
        target = TowStatus(new_status)

        def apply():
            req = self.get_request(request_id)
            previous = req.status
            self._check(req, target, state_machine.STATUS_UPDATE)

            req.status = target
            if target == TowStatus.ARRIVED:
                req.arrived_at = self._now()
            if estimated_arrival is not None:
                req.estimated_arrival = estimated_arrival
            if notes and notes.strip():
                req.notes = _append_note(req.notes, notes, actor)

            event_type = "CANCELLED" if target == TowStatus.CANCELLED else "STATUS_CHANGED"
            _log_event(
                self.db,
                req.id,
                actor,
                event_type,
                f"Status {previous.value} -> {target.value}" + (f" | {notes.strip()}" if notes else ""),
            )
            commit_or_raise(self.db, req.id)
            self.db.refresh(req)
            return req, previous

        req, previous = self._with_retry(request_id, apply)
        log.info(
            "tow_request_status_changed",
            request_id=req.id,
            request_number=req.request_number,
            **{"from": previous.value, "to": target.value},
        )

        kind = _STATUS_NOTIFICATIONS.get(target)
        if kind:
            payload = build_tow_notification(kind, request_number=req.request_number)
            notify_best_effort(self.relay, self.db.get(User, req.customer_id), payload)
        return req

    def cancel(self, request_id: str, reason: Optional[str] = None, actor: Optional[User] = None) -> TowRequest:
        return self.update_status(request_id, TowStatus.CANCELLED, notes=reason, actor=actor)

    # -------- Completion --------
    def complete(
        self,
        request_id: str,
        actual_distance=None,
        total_price=None,
        create_job_card: bool = False,
        actor: Optional[User] = None,
    ) -> TowRequest:
        def apply():
            req = self.get_request(request_id)
            self._check(req, TowStatus.COMPLETED, state_machine.COMPLETE)

            now = self._now()
            try:
                job_card_id = None
                if create_job_card and req.vehicle_id:
                    job_card_id = self.handoff.create_work_order(
                        req.customer_id,
                        req.vehicle_id,
                        work_order_description(req.pickup_location, req.problem_description),
                        now,
                        request_id=req.id,
                    )
                elif create_job_card:
                    log.info("handoff_skipped_no_vehicle", request_id=req.id)

                req.status = TowStatus.COMPLETED
                req.completed_at = now
                req.actual_distance = actual_distance
                req.total_price = total_price
                req.job_card_id = job_card_id
                _log_event(
                    self.db,
                    req.id,
                    actor,
                    "COMPLETED",
                    "Tow completed" + (f", job card {job_card_id} opened" if job_card_id else ""),
                )
                commit_or_raise(self.db, req.id)
            except HandoffFailureError:
                self.db.rollback()
                raise
            self.db.refresh(req)
            return req

        req = self._with_retry(request_id, apply)
        log.info(
            "tow_request_completed",
            request_id=req.id,
            request_number=req.request_number,
            job_card_id=req.job_card_id,
        )

        payload = build_tow_notification("completed", request_number=req.request_number)
        notify_best_effort(self.relay, self.db.get(User, req.customer_id), payload)
        return req

    # -------- Internals --------
    def _check(self, req: TowRequest, target: TowStatus, trigger: str) -> None:
        result = state_machine.transition(req.status, target, trigger)
        if isinstance(result, state_machine.Rejected):
            log.warning(
                "transition_rejected",
                request_id=req.id,
                request_number=req.request_number,
                reason=result.reason,
                **{"from": result.current.value, "to": result.attempted.value},
            )
            raise InvalidTransitionError(
                f"Tow request {req.request_number}: {result.reason}",
                request_id=req.id,
                current=result.current.value,
                attempted=result.attempted.value,
                reason=result.reason,
            )

    def _with_retry(self, request_id: str, apply: Callable[[], T]) -> T:
        attempts = max(settings.TRANSITION_RETRIES, 0) + 1
        for attempt in range(1, attempts + 1):
            try:
                return apply()
            except ConcurrentModificationError:
                if attempt >= attempts:
                    log.warning("concurrent_modification", request_id=request_id, attempts=attempt)
                    raise
                log.info("transition_retry", request_id=request_id, attempt=attempt)
                # commit_or_raise already rolled back, so the next load is fresh
                self.db.expire_all()
        raise AssertionError("unreachable")
