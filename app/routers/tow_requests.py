from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.auth import STAFF_ROLES, get_current_user, is_staff, require_roles
from app.core.deps import get_coordinator, get_tracker
from app.models.tow_request import TowRequest, TowStatus
from app.models.user import User, UserRole
from app.schemas.tow_request import (
    LocationPingCreate,
    LocationPingOut,
    TowRequestAssign,
    TowRequestComplete,
    TowRequestCreate,
    TowRequestEventOut,
    TowRequestOut,
    TowRequestStatusUpdate,
)
from app.services.dispatch import DispatchCoordinator
from app.services.tracking import LocationTracker

router = APIRouter(prefix="/tow-requests", tags=["tow-requests"])


def _assert_request_access(user: User, req: TowRequest, coordinator: DispatchCoordinator):
    if is_staff(user):
        return
    if user.role == UserRole.CUSTOMER and req.customer_id == user.id:
        return
    if user.role == UserRole.DRIVER:
        driver = coordinator.fleet.get_driver_by_user_id(user.id)
        if driver and req.assigned_driver_id == driver.id:
            return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your tow request")


@router.post("", response_model=TowRequestOut, status_code=201)
def create_tow_request(
    payload: TowRequestCreate,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    customer_id = payload.customer_id or user.id
    if customer_id != user.id and not is_staff(user):
        raise HTTPException(status_code=403, detail="Only staff can open a request for another customer")

    details = payload.model_dump(
        exclude={"customer_id", "pickup_location", "dropoff_location", "vehicle_id", "problem_description"}
    )
    try:
        return coordinator.create_request(
            customer_id=customer_id,
            pickup_location=payload.pickup_location,
            dropoff_location=payload.dropoff_location,
            vehicle_id=payload.vehicle_id,
            problem_description=payload.problem_description,
            actor=user,
            **details,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[TowRequestOut])
def list_tow_requests(
    status_filter: Optional[str] = None,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    status_value = None
    if status_filter:
        try:
            status_value = TowStatus(status_filter)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid status_filter")

    if is_staff(user):
        return coordinator.list_requests(status=status_value)

    if user.role == UserRole.DRIVER:
        driver = coordinator.fleet.get_driver_by_user_id(user.id)
        if not driver:
            return []
        jobs = coordinator.list_requests_for_driver(driver.id)
        return [j for j in jobs if status_value is None or j.status == status_value]

    return coordinator.list_requests(customer_id=user.id, status=status_value)


@router.get("/active", response_model=list[TowRequestOut])
def list_active_tow_requests(
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    _user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return coordinator.list_active_requests()


@router.get("/by-number/{request_number}", response_model=TowRequestOut)
def get_tow_request_by_number(
    request_number: str,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request_by_number(request_number)
    _assert_request_access(user, req, coordinator)
    return req


@router.get("/{request_id}", response_model=TowRequestOut)
def get_tow_request(
    request_id: str,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request(request_id)
    _assert_request_access(user, req, coordinator)
    return req


@router.get("/{request_id}/events", response_model=list[TowRequestEventOut])
def get_tow_request_events(
    request_id: str,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request(request_id)
    _assert_request_access(user, req, coordinator)
    return coordinator.list_events(request_id)


@router.post("/{request_id}/assign", response_model=TowRequestOut)
def assign_tow_request(
    request_id: str,
    payload: TowRequestAssign,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return coordinator.assign(
        request_id,
        driver_id=payload.driver_id,
        truck_id=payload.truck_id,
        third_party_wrecker_id=payload.third_party_wrecker_id,
        wrecker_type=payload.wrecker_type,
        estimated_arrival=payload.estimated_arrival,
        actor=user,
    )


@router.post("/{request_id}/status", response_model=TowRequestOut)
def update_tow_request_status(
    request_id: str,
    payload: TowRequestStatusUpdate,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request(request_id)
    _assert_request_access(user, req, coordinator)
    if user.role == UserRole.CUSTOMER and payload.status != TowStatus.CANCELLED:
        raise HTTPException(status_code=403, detail="Customers can only cancel a request")

    return coordinator.update_status(
        request_id,
        payload.status,
        estimated_arrival=payload.estimated_arrival,
        notes=payload.notes,
        actor=user,
    )


@router.post("/{request_id}/complete", response_model=TowRequestOut)
def complete_tow_request(
    request_id: str,
    payload: TowRequestComplete,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    user: User = Depends(require_roles(*STAFF_ROLES)),
):
    return coordinator.complete(
        request_id,
        actual_distance=payload.actual_distance,
        total_price=payload.total_price,
        create_job_card=payload.create_job_card,
        actor=user,
    )


# -------------------
# GPS TRACKING
# -------------------
@router.post("/{request_id}/tracking", response_model=LocationPingOut, status_code=201)
def record_location_ping(
    request_id: str,
    payload: LocationPingCreate,
    tracker: LocationTracker = Depends(get_tracker),
    user: User = Depends(get_current_user),
):
    # driver identity is re-derived from the caller, never taken from the body
    return tracker.record_ping(
        request_id,
        user.id,
        payload.latitude,
        payload.longitude,
        timestamp=payload.timestamp,
        speed=payload.speed,
        heading=payload.heading,
        accuracy=payload.accuracy,
    )


@router.get("/{request_id}/tracking", response_model=list[LocationPingOut])
def get_location_history(
    request_id: str,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    tracker: LocationTracker = Depends(get_tracker),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request(request_id)
    _assert_request_access(user, req, coordinator)
    return tracker.history(request_id)


@router.get("/{request_id}/tracking/latest", response_model=Optional[LocationPingOut])
def get_latest_location(
    request_id: str,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
    tracker: LocationTracker = Depends(get_tracker),
    user: User = Depends(get_current_user),
):
    req = coordinator.get_request(request_id)
    _assert_request_access(user, req, coordinator)
    return tracker.latest_location(request_id)
